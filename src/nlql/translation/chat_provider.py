from __future__ import annotations

import random
import time
from typing import List, Optional

import pybreaker
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage

from nlql.common.cancellation import RequestDeadline
from nlql.common.errors import TranslationError, TranslationErrorKind
from nlql.common.logger import get_logger
from nlql.common.resilience import call_guarded, create_breaker
from .extraction import extract_sql
from .prompt_builder import TranslationPrompt
from .provider import CandidateSQL, TranslationProvider

logger = get_logger("chat_provider")


def _only_transient(exc: BaseException) -> bool:
    """Breaker exclusion: auth failures and malformed output say nothing about availability."""
    return isinstance(exc, TranslationError) and not exc.is_transient


def response_text(content) -> str:
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class ChatTranslationProvider(TranslationProvider):
    """Translation through a LangChain chat model.

    Each attempt gets its own HTTP timeout, bounded by the request deadline.
    Transient failures (timeouts, connection errors, rate limits, 5xx) are
    retried with exponential backoff and jitter. Authentication failures and
    responses without SQL fail immediately. A per-instance circuit breaker
    counts only the transient failures.

    Subclasses build the chat model and map their SDK's exceptions onto
    :class:`TranslationError`.

    Attributes:
        model (str): Chat model name.
        max_attempts (int): Attempts including the first one.
        breaker (pybreaker.CircuitBreaker): Guards every attempt.
    """

    default_model = ""

    def __init__(
        self,
        api_key: str,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_sec: float = 30.0,
        max_attempts: int = 3,
        backoff_sec: float = 0.5,
        backoff_max_sec: float = 8.0,
        breaker_fail_max: int = 5,
        breaker_reset_sec: int = 60,
    ):
        self.api_key = api_key
        self.model = model or self.default_model
        self.base_url = base_url
        self.timeout_sec = timeout_sec
        self.max_attempts = max(1, max_attempts)
        self.backoff_sec = backoff_sec
        self.backoff_max_sec = backoff_max_sec
        self.breaker = create_breaker(
            name=f"LLM_BREAKER[{self.name}:{self.model}]",
            fail_max=breaker_fail_max,
            reset_timeout=breaker_reset_sec,
            exclude=[_only_transient],
        )

    def _make_llm(self, timeout: Optional[float]) -> BaseChatModel:
        raise NotImplementedError

    def _map_error(self, error: Exception) -> Optional[TranslationError]:
        """Translates an SDK exception, or returns None to let it propagate."""
        raise NotImplementedError

    def backoff_delay(self, attempt: int) -> float:
        """Delay before attempt ``attempt + 1``: capped exponential plus up to 50% jitter."""
        delay = min(self.backoff_max_sec, self.backoff_sec * (2 ** (attempt - 1)))
        return delay + random.uniform(0, delay / 2)

    def translate(self, prompt: TranslationPrompt, deadline: Optional[RequestDeadline] = None) -> CandidateSQL:
        deadline = deadline or RequestDeadline.unbounded()
        messages = prompt.to_messages()

        attempt = 1
        while True:
            if deadline.expired():
                raise TranslationError(
                    TranslationErrorKind.TIMEOUT,
                    f"request deadline exceeded after {attempt - 1} translation attempt(s)",
                )
            try:
                return call_guarded(self.breaker, self._attempt, messages, prompt.dialect, deadline)
            except pybreaker.CircuitBreakerError as e:
                raise TranslationError(
                    TranslationErrorKind.UNAVAILABLE,
                    f"translation provider unavailable (circuit open): {e}",
                ) from e
            except TranslationError as e:
                if not e.is_transient or attempt == self.max_attempts:
                    raise
                delay = self.backoff_delay(attempt)
                remaining = deadline.remaining()
                if remaining is not None and delay >= remaining:
                    logger.warning(
                        f"Not retrying translation: backoff {delay:.2f}s exceeds remaining {remaining:.2f}s"
                    )
                    raise
                logger.warning(
                    f"Translation attempt {attempt}/{self.max_attempts} failed ({e}), retrying in {delay:.2f}s"
                )
                time.sleep(delay)
                attempt += 1

    def _attempt(
        self, messages: List[BaseMessage], dialect: Optional[str], deadline: RequestDeadline
    ) -> CandidateSQL:
        llm = self._make_llm(deadline.bound(self.timeout_sec))
        started = time.perf_counter()
        try:
            response = llm.invoke(messages)
        except Exception as e:
            mapped = self._map_error(e)
            if mapped is None:
                raise
            raise mapped from e

        latency_ms = (time.perf_counter() - started) * 1000
        raw = response_text(response.content)
        sql = extract_sql(raw, dialect)
        logger.info(f"Translated in {latency_ms:.0f}ms with {self.name}:{self.model}")
        return CandidateSQL(sql=sql, raw_response=raw, model=self.model, latency_ms=latency_ms)
