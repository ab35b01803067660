"""Bounded TTL cache of composite results keyed by request fingerprint.

Eviction is by insertion order, not access order: when the cache is full the
oldest inserted entry goes first regardless of how recently it was read.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Callable
import contextlib
import dataclasses
import logging
import threading
import time

from codescope.constants import CACHE_MAX_SIZE, CACHE_SWEEP_INTERVAL, CACHE_TTL_MINUTES
from codescope.core.types import CacheEntry, CompositeResult
from codescope.telemetry import (
    EVENT_CACHE_EVICTED,
    TelemetryContext,
    TelemetryContextProtocol,
)

logger = logging.getLogger(__name__)


class ResponseCache:
    """Thread-safe insertion-ordered cache with per-entry TTL."""

    def __init__(
        self,
        max_size: int = CACHE_MAX_SIZE,
        ttl_seconds: float = CACHE_TTL_MINUTES * 60,
        *,
        clock: Callable[[], float] = time.monotonic,
        telemetry: TelemetryContextProtocol | None = None,
    ):
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._telemetry = telemetry or TelemetryContext()
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, fingerprint: str) -> tuple[CompositeResult | None, bool]:
        """Return ``(result, True)`` for a live entry, else ``(None, False)``.

        An expired entry is removed on the way out.
        """
        with self._lock:
            entry = self._entries.get(fingerprint)
            if entry is None:
                return None, False
            if self._expired(entry, self._clock()):
                del self._entries[fingerprint]
                logger.debug("Cache entry %s expired", fingerprint[:12])
                return None, False
            return entry.result, True

    def put(self, fingerprint: str, result: CompositeResult) -> None:
        """Insert or replace ``fingerprint``, evicting the oldest entry when full."""
        evicted: str | None = None
        with self._lock:
            if fingerprint in self._entries:
                del self._entries[fingerprint]
            elif len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
            self._entries[fingerprint] = CacheEntry(
                fingerprint=fingerprint, result=result, inserted_at=self._clock()
            )
            size = len(self._entries)

        if evicted is not None:
            logger.debug("Evicted oldest cache entry %s", evicted[:12])
            self._telemetry.event(
                EVENT_CACHE_EVICTED, fingerprint=evicted, reason="capacity", size=size
            )

    def sweep(self) -> int:
        """Remove every expired entry; return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if self._expired(e, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint: object) -> bool:
        with self._lock:
            return fingerprint in self._entries

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.inserted_at > self.ttl_seconds


class CacheSweeper:
    """Background task that periodically sweeps a ``ResponseCache``."""

    def __init__(
        self,
        cache: ResponseCache,
        interval_seconds: float = CACHE_SWEEP_INTERVAL,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._cache = cache
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start sweeping on the running event loop (idempotent)."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(
            self._run(), name="codescope-cache-sweeper"
        )

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self._cache.sweep()
            except Exception:
                logger.exception("Cache sweep failed")


def mark_cached(result: CompositeResult) -> CompositeResult:
    """Copy of ``result`` flagged as served from cache."""
    return dataclasses.replace(result, from_cache=True, usage=result.usage.copy())
