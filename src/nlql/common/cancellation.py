from __future__ import annotations

import time
from typing import Optional


class RequestDeadline:
    """Monotonic deadline shared by every blocking call of one pipeline run.

    The deadline never interrupts anything by itself: each blocking stage asks
    for the remaining budget and hands it to its transport (HTTP client
    timeout, database statement timeout) so the in-flight call is cancelled
    where it lives.
    """

    def __init__(self, timeout_sec: Optional[float]):
        self.timeout_sec = timeout_sec
        self._expires_at = None if timeout_sec is None else time.monotonic() + timeout_sec

    @classmethod
    def unbounded(cls) -> "RequestDeadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0.0

    def bound(self, timeout_sec: Optional[float]) -> Optional[float]:
        """Returns the smaller of ``timeout_sec`` and the remaining budget."""
        remaining = self.remaining()
        if remaining is None:
            return timeout_sec
        if timeout_sec is None:
            return remaining
        return min(timeout_sec, remaining)
