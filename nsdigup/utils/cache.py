from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..models.report import Report

logger = logging.getLogger(__name__)

SWEEP_BATCH = 256


class CacheBase:
    def get(self, key: str) -> Optional[Report]:
        raise NotImplementedError

    def set(self, key: str, value: Report) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def size(self) -> int:
        raise NotImplementedError

    def close(self) -> None:
        pass


class NoopCache(CacheBase):
    def get(self, key: str) -> Optional[Report]:
        return None

    def set(self, key: str, value: Report) -> None:
        return None

    def delete(self, key: str) -> None:
        return None

    def clear(self) -> None:
        return None

    def size(self) -> int:
        return 0


@dataclass
class _Entry:
    report: Report
    stored_at: float


class MemoryCache(CacheBase):
    """Thread-safe in-process TTL store. A TTL of 0 keeps entries forever.

    With a positive TTL a daemon thread sweeps expired entries every ``ttl / 2``
    seconds; ``get`` also drops an expired entry when it sees one.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        start_sweeper: bool = True,
    ) -> None:
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._sweeper: Optional[threading.Thread] = None
        if ttl_seconds > 0 and start_sweeper:
            self._sweeper = threading.Thread(target=self._sweep_loop, name="nsdigup-cache-sweeper", daemon=True)
            self._sweeper.start()

    def _expired(self, entry: _Entry, now: float) -> bool:
        return self.ttl > 0 and now - entry.stored_at > self.ttl

    def get(self, key: str) -> Optional[Report]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("cache miss", extra={"domain": key, "reason": "not_found"})
                return None
            if self._expired(entry, now):
                del self._entries[key]
                logger.debug("cache miss", extra={"domain": key, "reason": "expired", "age": now - entry.stored_at})
                return None
        logger.debug("cache hit", extra={"domain": key, "age": now - entry.stored_at})
        return entry.report

    def set(self, key: str, value: Report) -> None:
        with self._lock:
            self._entries[key] = _Entry(report=value, stored_at=self._clock())
            total = len(self._entries)
        logger.debug("cache set", extra={"domain": key, "total_entries": total})

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def sweep(self) -> int:
        """Evict expired entries, holding the lock one batch at a time."""
        if self.ttl <= 0:
            return 0
        with self._lock:
            keys = list(self._entries)
        removed = 0
        for offset in range(0, len(keys), SWEEP_BATCH):
            now = self._clock()
            with self._lock:
                for key in keys[offset:offset + SWEEP_BATCH]:
                    entry = self._entries.get(key)
                    if entry is not None and self._expired(entry, now):
                        del self._entries[key]
                        removed += 1
        if removed:
            logger.debug("cache cleanup completed", extra={"removed": removed, "remaining": self.size()})
        return removed

    def _sweep_loop(self) -> None:
        interval = self.ttl / 2
        while not self._stop.wait(interval):
            self.sweep()

    def close(self) -> None:
        self._stop.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=1.0)


def build_cache(cache_mode: str, ttl_seconds: float) -> CacheBase:
    if cache_mode == "memory":
        return MemoryCache(ttl_seconds)
    return NoopCache()
