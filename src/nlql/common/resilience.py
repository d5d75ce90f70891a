"""
Circuit breakers for the external dependencies of the pipeline.

Breakers are created per collaborator instance rather than globally so that
the API container, the CLI and tests never share failure counters.
Only failures that say something about the health of the dependency should
trip a breaker; callers pass ``exclude`` predicates for the rest
(authentication failures, malformed model output).
"""
from typing import Any, Callable, List, Optional, Union

import pybreaker

from nlql.common.logger import get_logger

logger = get_logger("resilience")

Exclusion = Union[type, Callable[[BaseException], bool]]


class ObservabilityListener(pybreaker.CircuitBreakerListener):
    """Logs circuit breaker state changes and counted failures."""

    def state_change(self, cb, old_state, new_state):
        old_name = old_state.name if old_state else "none"
        logger.warning(
            f"Circuit Breaker '{cb.name}' changed state: {old_name} -> {new_state.name}"
        )

    def failure(self, cb, exc):
        logger.error(
            f"Circuit Breaker '{cb.name}' recorded failure: {type(exc).__name__}: {exc}"
        )


def create_breaker(
    name: str,
    fail_max: int = 5,
    reset_timeout: int = 60,
    exclude: Optional[List[Exclusion]] = None,
) -> pybreaker.CircuitBreaker:
    """Factory to create a configured Circuit Breaker."""
    return pybreaker.CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=name,
        listeners=[ObservabilityListener()],
        exclude=exclude or [],
    )


def call_guarded(breaker: pybreaker.CircuitBreaker, func: Callable[..., Any], *args, **kwargs) -> Any:
    """Runs ``func`` through ``breaker``; raises ``pybreaker.CircuitBreakerError`` when open."""
    return breaker.call(func, *args, **kwargs)
