"""Concrete implementation of the two-level Caching Service.

L1 is an in-memory dict with per-entry expiry and a size bound; L2 is a
diskcache.Cache directory shared across runs. Used for values that are
expensive to regenerate and stable for a while, such as the daily
inspiration and the surah list.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import diskcache as dc

from zestislam.domain.interfaces.cache import CacheService
from zestislam.domain.models.common import CacheKey

logger = logging.getLogger(__name__)

DEFAULT_L1_MAX_ITEMS = 128
DEFAULT_L1_TTL_SECONDS = 15 * 60
DEFAULT_L2_TTL_SECONDS = 24 * 60 * 60

LEVELS = ('l1', 'l2', 'all')


@dataclass
class CacheEntry:
    """Internal representation of an L1 entry with expiry."""
    value: Any
    expiry_time: float


class CachingServiceImpl(CacheService):
    """Two-level cache implementation (L1 memory, L2 diskcache)."""

    def __init__(
        self,
        cache_dir: Path,
        l1_max_items: int = DEFAULT_L1_MAX_ITEMS,
        l1_ttl: int = DEFAULT_L1_TTL_SECONDS,
        l2_ttl: int = DEFAULT_L2_TTL_SECONDS,
    ):
        self.l1_cache: Dict[CacheKey, CacheEntry] = {}
        self.l1_max_items = l1_max_items
        self.l1_ttl = l1_ttl
        self.l2_ttl = l2_ttl
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.disk_cache = dc.Cache(str(self.cache_dir), timeout=1)
        logger.info(f"CachingService initialized. L1(ttl={l1_ttl}s, max={l1_max_items}), L2(dir={self.cache_dir}, ttl={l2_ttl}s)")

    @staticmethod
    def _check_level(level: str) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown cache level '{level}'. Expected one of {LEVELS}.")

    def _prune_l1(self) -> None:
        """Removes expired items from L1 and evicts the oldest while over the size limit."""
        now = time.time()
        for key in [k for k, v in self.l1_cache.items() if now > v.expiry_time]:
            del self.l1_cache[key]
        while len(self.l1_cache) > self.l1_max_items:
            del self.l1_cache[next(iter(self.l1_cache))]

    async def get(self, key: CacheKey, level: str = 'all') -> Optional[Any]:
        self._check_level(level)
        if level in ('l1', 'all'):
            self._prune_l1()
            entry = self.l1_cache.get(key)
            if entry is not None:
                logger.debug(f"L1 cache hit for key: {key}")
                return entry.value

        if level in ('l2', 'all'):
            value = self.disk_cache.get(key, default=None)
            if value is not None:
                logger.debug(f"L2 cache hit for key: {key}")
                if level == 'all':
                    await self.set(key, value, level='l1')
                return value

        logger.debug(f"Cache miss for key: {key} (level={level})")
        return None

    async def set(self, key: CacheKey, value: Any, ttl: Optional[int] = None, level: str = 'all') -> None:
        self._check_level(level)
        if level in ('l1', 'all'):
            l1_ttl = min(ttl, self.l1_ttl) if ttl is not None else self.l1_ttl
            self.l1_cache[key] = CacheEntry(value=value, expiry_time=time.time() + l1_ttl)
            self._prune_l1()
        if level in ('l2', 'all'):
            self.disk_cache.set(key, value, expire=ttl if ttl is not None else self.l2_ttl)
            logger.debug(f"Stored item in L2 cache: key={key}")

    async def delete(self, key: CacheKey, level: str = 'all') -> None:
        self._check_level(level)
        if level in ('l1', 'all'):
            self.l1_cache.pop(key, None)
        if level in ('l2', 'all'):
            self.disk_cache.delete(key)

    async def clear(self, level: str = 'all') -> None:
        self._check_level(level)
        if level in ('l1', 'all'):
            self.l1_cache.clear()
            logger.info("Cleared L1 (in-memory) cache.")
        if level in ('l2', 'all'):
            self.disk_cache.clear()
            logger.info(f"Cleared L2 (disk) cache at: {self.cache_dir}")

    def close(self) -> None:
        self.disk_cache.close()
