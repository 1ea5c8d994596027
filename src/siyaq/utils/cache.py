"""In-memory TTL cache owned by the host process.

LRU cache with TTL expiration and an optional periodic sweep task.
Instances are created at startup and passed by reference; there are no
module-level cache singletons. Suitable for single-instance deployments.
"""

from __future__ import annotations

import asyncio
import contextlib
import time

from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from siyaq.utils.logger import logger


class TTLCache:
    """Simple in-memory cache with TTL and max size.

    Safe for concurrent coroutines (uses asyncio.Lock). Expired entries are
    dropped lazily on read and eagerly by ``sweep()``, which ``start()``
    schedules every ``sweep_interval`` seconds until ``stop()``.
    """

    def __init__(
        self,
        max_size: int = 1000,
        default_ttl: float = 300.0,
        sweep_interval: float = 600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            max_size: Maximum number of entries (LRU eviction when exceeded)
            default_ttl: Default time-to-live in seconds
            sweep_interval: Seconds between background sweeps of expired entries
            clock: Monotonic time source (injectable for tests)
        """
        self._cache: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._max_size = max_size
        self._default_ttl = default_ttl
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Any | None:
        """Get value from cache if not expired."""
        async with self._lock:
            if key not in self._cache:
                self._misses += 1
                return None

            value, expires_at = self._cache[key]
            if self._clock() > expires_at:
                del self._cache[key]
                self._misses += 1
                return None

            self._cache.move_to_end(key)
            self._hits += 1
            return value

    async def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Set value in cache with TTL."""
        ttl = ttl if ttl is not None else self._default_ttl
        expires_at = self._clock() + ttl

        async with self._lock:
            if key in self._cache:
                del self._cache[key]

            while len(self._cache) >= self._max_size:
                self._cache.popitem(last=False)

            self._cache[key] = (value, expires_at)

    async def delete(self, key: str) -> bool:
        """Remove entry from cache."""
        async with self._lock:
            if key in self._cache:
                del self._cache[key]
                return True
            return False

    async def clear(self) -> None:
        """Clear all entries."""
        async with self._lock:
            self._cache.clear()

    async def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        async with self._lock:
            expired = [key for key, (_, expires_at) in self._cache.items() if now > expires_at]
            for key in expired:
                del self._cache[key]
        if expired:
            logger.debug(f"Cache sweep removed {len(expired)} expired entries")
        return len(expired)

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            logger.info(f"Cache sweep task started (interval={self._sweep_interval}s)")

    async def stop(self) -> None:
        """Stop the background sweep task."""
        if self._sweep_task:
            self._sweep_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
            logger.info("Cache sweep task stopped")

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            await self.sweep()

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._hits + self._misses
        hit_rate = self._hits / total if total > 0 else 0.0
        return {
            "size": len(self._cache),
            "max_size": self._max_size,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": f"{hit_rate:.1%}",
            "sweeping": self.running,
        }
