"""In-memory health registry for diagnostics.

Keeps provider failure counters per provider and error kind together with
the latest cache statistics so a caller can dump one snapshot.
"""
from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Dict, Mapping, Optional

from .errors import ErrorKind


@dataclass(frozen=True)
class CacheStats:
    """Simple container for cache related counters."""

    hits: int = 0
    misses: int = 0
    keys: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "keys": self.keys}


class HealthRegistry:
    """Stores provider error counters and cache stats."""

    def __init__(self) -> None:
        self._provider_errors: Dict[str, Dict[str, int]] = {}
        self._cache_stats: CacheStats = CacheStats()
        self._lock = Lock()

    # -- Provider errors ----------------------------------------------------
    def record_provider_error(self, provider: str, kind: ErrorKind, increment: int = 1) -> None:
        if not provider:
            raise ValueError("provider must be provided")
        if increment <= 0:
            raise ValueError("increment must be positive")
        with self._lock:
            counters = self._provider_errors.setdefault(provider, {})
            counters[kind.value] = counters.get(kind.value, 0) + increment

    # -- Cache stats --------------------------------------------------------
    def set_cache_stats(self, stats: Optional[Mapping[str, int]]) -> None:
        if not stats:
            self._cache_stats = CacheStats()
            return
        self._cache_stats = CacheStats(
            hits=int(stats.get("hits", 0)),
            misses=int(stats.get("misses", 0)),
            keys=int(stats.get("keys", 0)),
        )

    # -- Snapshot -----------------------------------------------------------
    def snapshot(self) -> Dict[str, object]:
        with self._lock:
            providers = {provider: dict(counters) for provider, counters in self._provider_errors.items()}
            cache = self._cache_stats.as_dict()
        return {"providers": providers, "cache": cache}


__all__ = ["HealthRegistry", "CacheStats"]
