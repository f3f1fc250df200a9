"""
Aggregation Cache — In-process TTL key/value store with a background sweeper.

Entries expire logically as soon as ``now - timestamp > ttl``: ``get`` treats
them as absent and evicts them. A sweeper task started with ``start()``
purges expired entries every ``sweep_interval`` seconds so keys that are set
but never re-read do not accumulate.

Usage:
    cache = CacheManager(default_ttl=300, sweep_interval=60)
    async with cache:
        cache.set("agg_F1_facility", metrics)
        cache.get("agg_F1_facility")   # → metrics, or None once expired
        cache.clear("F1")              # drop every key containing "F1"
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import structlog

from core.config import get_settings

logger = structlog.get_logger()

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


@dataclass
class CacheEntry:
    key: str
    value: Any
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


@dataclass(frozen=True)
class CacheStats:
    size: int
    hits: int
    misses: int
    total_requests: int
    hit_rate: float
    evictions: int


class CacheManager:
    """Thread-safe TTL cache. Absence is always ``None``, never an exception."""

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._sweeper: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, clock: Callable[[], float] = time.monotonic) -> CacheManager:
        settings = get_settings()
        return cls(
            default_ttl=settings.cache_default_ttl_seconds,
            sweep_interval=settings.cache_sweep_interval_seconds,
            clock=clock,
        )

    # ── Store ──────────────────────────────────────────────────────────

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        entry = CacheEntry(
            key=key,
            value=value,
            timestamp=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        with self._lock:
            self._entries[key] = entry

    def get(self, key: str, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return default
            if entry.is_expired(now):
                del self._entries[key]
                self._evictions += 1
                self._misses += 1
                return default
            self._hits += 1
            return entry.value

    def clear(self, key_fragment: str | None = None) -> int:
        """Remove every entry, or only those whose key contains ``key_fragment``."""
        with self._lock:
            if key_fragment is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [key for key in self._entries if key_fragment in key]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)
        logger.debug("cache.cleared", key_fragment=key_fragment, removed=removed)
        return removed

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            self._evictions += len(expired)
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                size=len(self._entries),
                hits=self._hits,
                misses=self._misses,
                total_requests=total,
                hit_rate=self._hits / total if total else 0.0,
                evictions=self._evictions,
            )

    # ── Background sweep lifecycle ─────────────────────────────────────

    @property
    def is_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def start(self) -> None:
        if self.is_running:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="cache-sweeper")
        logger.info("cache.sweeper_started", interval_seconds=self.sweep_interval)

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("cache.sweeper_stopped")

    async def __aenter__(self) -> CacheManager:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                removed = self.purge_expired()
            except Exception:
                logger.exception("cache.sweep_failed")
                continue
            if removed:
                logger.debug("cache.swept", removed=removed, remaining=len(self))
