"""Result cache for Monte Carlo runs.

Entries are keyed by a fingerprint of everything that determines a result
(inputs, assumptions, iteration count and seed) and expire after a TTL.
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from loguru import logger
from pydantic import BaseModel


def _canonical(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


def fingerprint(*parts: Any) -> str:
    """SHA-256 of the canonical JSON form of ``parts``.

    >>> fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})
    True
    """
    payload = json.dumps([_canonical(p) for p in parts], sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    result: Any
    computed_at: datetime


class SimulationCache(Protocol):
    def get(self, fingerprint: str) -> Optional[CacheEntry]: ...

    def set(self, fingerprint: str, result: Any, computed_at: Optional[datetime] = None) -> None: ...

    def invalidate(self, fingerprint: str) -> None: ...

    def clear(self) -> int: ...


class InMemorySimulationCache:
    """Thread-safe in-process cache.  Concurrent writers for the same key both
    write and the last one wins."""

    def __init__(self, ttl: Optional[timedelta] = None, clock: Callable[[], datetime] = _utcnow):
        self.ttl = ttl if ttl is not None else timedelta(hours=24)
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, fingerprint: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                return None
            if self._clock() - entry.computed_at > self.ttl:
                del self._entries[fingerprint]
                logger.debug("cache entry {} expired", fingerprint[:12])
                return None
            return entry

    def set(self, fingerprint: str, result: Any, computed_at: Optional[datetime] = None) -> None:
        now = self._clock()
        entry = CacheEntry(result=result, computed_at=computed_at or now)
        with self._lock:
            self._sweep(now)
            self._entries[fingerprint] = entry

    def _sweep(self, now: datetime) -> None:
        # caller holds the lock
        expired = [fp for fp, e in self._entries.items() if now - e.computed_at > self.ttl]
        for fp in expired:
            del self._entries[fp]
        if expired:
            logger.debug("evicted {} expired cache entries", len(expired))

    def invalidate(self, fingerprint: str) -> None:
        with self._lock:
            self._entries.pop(fingerprint, None)

    def clear(self) -> int:
        with self._lock:
            n = len(self._entries)
            self._entries.clear()
        return n

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["CacheEntry", "SimulationCache", "InMemorySimulationCache", "fingerprint"]
