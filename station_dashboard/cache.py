from __future__ import annotations

import hashlib
import logging
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable, Dict, Optional, Tuple

from .entities import CacheEntry


logger = logging.getLogger(__name__)

_MISSING = object()


def make_cache_key(kind: str, *parts: Any) -> str:
    """Return ``"<kind>:<sha256>"`` for the identifying request parameters."""
    normalized = []
    for part in parts:
        if isinstance(part, float):
            normalized.append(f"{part:.6f}")
        else:
            normalized.append(str(part))
    digest = hashlib.sha256("|".join(normalized).encode("utf-8")).hexdigest()
    return f"{kind}:{digest}"


class TTLCache:
    """In-memory TTL cache with per-key single-flight computation.

    Entries are treated as absent from the moment ``now >= expires_at``.
    ``get_or_compute`` never stores a failed computation, and concurrent
    misses on one key wait for the first caller's result instead of
    computing it again.
    """

    def __init__(self, time_func: Callable[[], float] = time.monotonic) -> None:
        self._time_func = time_func
        self._storage: Dict[str, Tuple[float, Any]] = {}
        self._inflight: Dict[str, Future] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._lookup(key)
        return default if value is _MISSING else value

    def entry(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            item = self._storage.get(key)
            if not item or item[0] <= self._time_func():
                return None
            expires_at, value = item
        return CacheEntry(key=key, value=value, expires_at=expires_at)

    def put(self, key: str, value: Any, ttl: float) -> None:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        with self._lock:
            self._storage[key] = (self._time_func() + ttl, value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._storage.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._storage.clear()
            self._hits = 0
            self._misses = 0

    def __contains__(self, key: str) -> bool:
        return self.entry(key) is not None

    def get_or_compute(self, key: str, ttl: float, compute: Callable[[], Any]) -> Any:
        if ttl < 0:
            raise ValueError("ttl must be >= 0")
        with self._lock:
            value = self._lookup(key)
            if value is not _MISSING:
                return value
            future = self._inflight.get(key)
            leader = future is None
            if leader:
                future = Future()
                self._inflight[key] = future

        if not leader:
            logger.debug("Waiting for in-flight computation of %s", key)
            return future.result()

        logger.debug("Cache miss for %s", key)
        try:
            value = compute()
        except BaseException as exc:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._storage[key] = (self._time_func() + ttl, value)
            self._inflight.pop(key, None)
        future.set_result(value)
        return value

    def stats(self) -> Dict[str, int]:
        with self._lock:
            now = self._time_func()
            keys = sum(1 for expires_at, _ in self._storage.values() if expires_at > now)
            return {"hits": self._hits, "misses": self._misses, "keys": keys}

    # Must be called with the lock held.
    def _lookup(self, key: str) -> Any:
        item = self._storage.get(key)
        if not item:
            self._misses += 1
            return _MISSING
        expires_at, value = item
        if expires_at <= self._time_func():
            self._storage.pop(key, None)
            self._misses += 1
            return _MISSING
        self._hits += 1
        return value


__all__ = ["TTLCache", "make_cache_key"]
