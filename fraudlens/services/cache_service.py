"""
Time- and size-bounded memoization of scan results, keyed by normalized URL.

Expired entries are removed by a periodic sweep and are never served.
When the item cap is exceeded, the entry with the earliest expiry goes.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fraudlens.models.scan import ScanResult
from fraudlens.utils.preprocessing import normalize_url

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    key: str
    value: ScanResult
    expiry: float


class ScanCache:
    """
    In-memory cache for scan results.
    Keys are normalized URLs.
    """

    def __init__(
        self,
        enabled: bool = True,
        ttl_seconds: int = 3600,
        max_items: int = 1000,
        sweep_interval: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.enabled = enabled
        self._entries: Dict[str, CacheEntry] = {}
        self._ttl = ttl_seconds
        self._max_items = max_items
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sweep_task: Optional[asyncio.Task] = None
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @staticmethod
    def make_key(url: str) -> str:
        return normalize_url(url)

    def get(self, url: str) -> Optional[ScanResult]:
        """Return the cached result for ``url`` unless absent or expired."""
        if not self.enabled:
            return None
        key = self.make_key(url)
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.expiry <= self._clock():
            self._entries.pop(key, None)
            self._misses += 1
            return None
        self._hits += 1
        logger.debug(f"Cache hit for {key}")
        return entry.value

    def put(self, url: str, result: ScanResult):
        """Store ``result``; evicts the earliest-expiring entry when over capacity."""
        if not self.enabled:
            return
        key = self.make_key(url)
        self._entries[key] = CacheEntry(key=key, value=result, expiry=self._clock() + self._ttl)
        if len(self._entries) > self._max_items:
            self._evict_earliest()
        logger.debug(f"Cached result for {key}")

    def _evict_earliest(self):
        oldest_key = min(self._entries, key=lambda k: self._entries[k].expiry)
        self._entries.pop(oldest_key, None)
        self._evictions += 1
        logger.debug(f"Evicted {oldest_key} (cache over {self._max_items} items)")

    def sweep(self) -> int:
        """Remove expired entries. Returns how many were removed."""
        now = self._clock()
        expired = [k for k, entry in self._entries.items() if entry.expiry <= now]
        for k in expired:
            self._entries.pop(k, None)
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    async def _sweep_loop(self):
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    def start(self):
        """Start the periodic sweep on the running event loop."""
        if not self.enabled or self._sweep_task is not None:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())

    async def stop(self):
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None

    def clear(self):
        self._entries.clear()
        logger.info("Cache cleared")

    @property
    def size(self) -> int:
        return len(self._entries)

    def stats(self) -> dict:
        return {
            "enabled": self.enabled,
            "size": len(self._entries),
            "max_items": self._max_items,
            "ttl_seconds": self._ttl,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
        }
