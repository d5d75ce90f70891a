from __future__ import annotations

import threading
import time
from typing import Callable, Dict, Optional, Tuple

from nlql.common.logger import get_logger
from nlql.schema.models import SchemaSnapshot

logger = get_logger("schema_cache")


class SchemaCache:
    """TTL cache of schema snapshots keyed by connection identity.

    Reads are shared across requests. A miss is rebuilt under a per-key lock,
    so concurrent requests for the same connection wait for one introspection
    instead of each running their own.
    """

    def __init__(self, ttl_sec: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._entries: Dict[str, Tuple[SchemaSnapshot, float]] = {}
        self._key_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _fresh(self, key: str) -> Optional[SchemaSnapshot]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        snapshot, expires_at = entry
        if self._clock() >= expires_at:
            return None
        return snapshot

    def get_or_build(self, key: str, build: Callable[[], SchemaSnapshot]) -> SchemaSnapshot:
        snapshot = self._fresh(key)
        if snapshot is not None:
            return snapshot

        with self._key_lock(key):
            snapshot = self._fresh(key)
            if snapshot is not None:
                return snapshot
            logger.info(f"Schema cache miss for {key}, introspecting")
            snapshot = build()
            with self._lock:
                self._entries[key] = (snapshot, self._clock() + self.ttl_sec)
            return snapshot

    def invalidate(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
