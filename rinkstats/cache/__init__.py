"""Two-tier expiring cache for normalized games and aggregate snapshots."""

from rinkstats.cache.tiered import (
    CacheEntry,
    CacheStatus,
    CacheTier,
    DiskTier,
    MemoryTier,
    TieredCache,
)

__all__ = [
    "CacheEntry",
    "CacheStatus",
    "CacheTier",
    "DiskTier",
    "MemoryTier",
    "TieredCache",
]
