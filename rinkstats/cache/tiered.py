"""
Tiered Expiring Cache

Two-tier key/value cache with absolute expiry:
- Session tier: bounded in-process map, lost on exit
- Durable tier: diskcache-backed store that survives restarts

Every entry carries its own expiry timestamp. Expired entries read as
misses and are evicted on that read. Storage failures are logged and
degrade to misses (reads) or no-ops (writes); they are never raised to
the caller.
"""

from __future__ import annotations

import sqlite3
import threading
import time
from collections import OrderedDict
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Callable, Protocol

from diskcache import Cache, Timeout
from loguru import logger

# Errors a storage backend may raise while the cache is unusable
STORAGE_ERRORS = (OSError, sqlite3.Error, Timeout)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Stored value with creation and absolute expiry times (epoch seconds)."""

    payload: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            payload=data["payload"],
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
        )


@dataclass
class CacheStatus:
    """Status information about cached data."""

    session_entries: int = 0
    durable_entries: int = 0
    games_cached: int = 0
    cache_size_mb: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "session_entries": self.session_entries,
            "durable_entries": self.durable_entries,
            "games_cached": self.games_cached,
            "cache_size_mb": round(self.cache_size_mb, 2),
        }


class CacheTier(Protocol):
    """Operations every cache tier supports."""

    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any, ttl: float) -> None: ...

    def remove(self, key: str) -> None: ...

    def clear(self) -> None: ...

    def keys(self, prefix: str = "") -> list[str]: ...


class MemoryTier:
    """
    Session tier.

    Bounded in-process map; the least recently used entry is evicted
    first once max_entries is reached.
    """

    def __init__(self, max_entries: int = 512, clock: Clock = time.time) -> None:
        self.max_entries = max_entries
        self.clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self.clock()):
                del self._entries[key]
                logger.debug(f"Session cache entry expired: {key}")
                return None
            self._entries.move_to_end(key)
            return entry.payload

    def set(self, key: str, value: Any, ttl: float) -> None:
        now = self.clock()
        with self._lock:
            self._entries[key] = CacheEntry(payload=value, created_at=now, expires_at=now + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def set_entry(self, key: str, entry: CacheEntry) -> None:
        """Store an entry keeping its original expiry."""
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self, prefix: str = "") -> list[str]:
        now = self.clock()
        with self._lock:
            return [k for k, e in self._entries.items() if k.startswith(prefix) and not e.is_expired(now)]


class DiskTier:
    """
    Durable tier backed by diskcache.

    Entries are stored as {payload, created_at, expires_at} dicts and
    expiry is checked against the injected clock, not diskcache's own
    expiry, so both tiers share one time source.
    """

    def __init__(self, directory: str | Path = "data/cache", clock: Clock = time.time) -> None:
        """
        Initialize the durable tier.

        Args:
            directory: Cache directory (created if missing)
            clock: Time source returning epoch seconds
        """
        self.directory = Path(directory)
        self.clock = clock
        self._cache: Cache | None = None

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            self._cache = Cache(str(self.directory))
            logger.debug(f"Durable cache opened at {self.directory}")
        except STORAGE_ERRORS as e:
            logger.warning(f"Durable cache unavailable at {self.directory}: {e}")

    @property
    def available(self) -> bool:
        return self._cache is not None

    def read_entry(self, key: str) -> tuple[CacheEntry | None, bool]:
        """
        Read the raw entry, evicting it if expired.

        Returns:
            (entry, healthy) where healthy is False when the store is
            unavailable or the read failed, so a None entry is not a
            reliable miss
        """
        if self._cache is None:
            return None, False

        try:
            raw = self._cache.get(key)
        except STORAGE_ERRORS as e:
            logger.warning(f"Durable cache read failed for {key}: {e}")
            return None, False

        if raw is None:
            return None, True

        try:
            entry = CacheEntry.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Discarding unreadable cache entry: {key}")
            self.remove(key)
            return None, True

        if entry.is_expired(self.clock()):
            logger.debug(f"Durable cache entry expired: {key}")
            self.remove(key)
            return None, True
        return entry, True

    def get_entry(self, key: str) -> CacheEntry | None:
        entry, _ = self.read_entry(key)
        return entry

    def get(self, key: str) -> Any | None:
        entry = self.get_entry(key)
        return entry.payload if entry is not None else None

    def set(self, key: str, value: Any, ttl: float) -> None:
        if self._cache is None:
            return
        now = self.clock()
        entry = CacheEntry(payload=value, created_at=now, expires_at=now + ttl)
        try:
            self._cache.set(key, entry.to_dict())
        except STORAGE_ERRORS as e:
            logger.warning(f"Durable cache write failed for {key}: {e}")

    def remove(self, key: str) -> None:
        if self._cache is None:
            return
        try:
            self._cache.delete(key)
        except STORAGE_ERRORS as e:
            logger.warning(f"Durable cache delete failed for {key}: {e}")

    def clear(self) -> None:
        if self._cache is None:
            return
        try:
            self._cache.clear()
        except STORAGE_ERRORS as e:
            logger.warning(f"Durable cache clear failed: {e}")

    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys with a prefix. Expiry is checked on read, not here."""
        if self._cache is None:
            return []
        try:
            return [k for k in self._cache.iterkeys() if isinstance(k, str) and k.startswith(prefix)]
        except STORAGE_ERRORS as e:
            logger.warning(f"Durable cache key scan failed: {e}")
            return []

    def sweep_expired(self) -> int:
        """Remove every expired entry. Returns the number removed."""
        removed = 0
        for key in self.keys():
            if self.get_entry(key) is None:
                removed += 1
        if removed:
            logger.info(f"Swept {removed} expired entries from durable cache")
        return removed

    def size_mb(self) -> float:
        if self._cache is None:
            return 0.0
        try:
            return self._cache.volume() / (1024 * 1024)
        except STORAGE_ERRORS:
            return 0.0

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()


class TieredCache:
    """
    Durable tier in front, session tier behind.

    Reads consult the durable tier first and copy hits into the session
    tier. A clean durable miss also drops the session copy; the session
    tier answers only while the durable store is unavailable or failing.
    """

    def __init__(
        self,
        durable: DiskTier,
        session: MemoryTier | None = None,
        default_ttl: float = 86400,
    ) -> None:
        self.durable = durable
        self.session = session if session is not None else MemoryTier(clock=durable.clock)
        self.default_ttl = default_ttl

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        max_entries: int = 512,
        default_ttl: float = 86400,
        clock: Clock = time.time,
    ) -> TieredCache:
        """Build both tiers sharing one clock."""
        return cls(
            durable=DiskTier(directory, clock=clock),
            session=MemoryTier(max_entries=max_entries, clock=clock),
            default_ttl=default_ttl,
        )

    def get(self, key: str) -> Any | None:
        """
        Get a value by key.

        Args:
            key: Cache key

        Returns:
            Cached payload, or None if missing or expired
        """
        entry, healthy = self.durable.read_entry(key)
        if entry is not None:
            self.session.set_entry(key, entry)
            return entry.payload

        if healthy:
            # Removed or expired in durable storage, possibly by another process
            self.session.remove(key)
            return None

        value = self.session.get(key)
        if value is not None:
            logger.debug(f"Session cache hit: {key}")
        return value

    def set(self, key: str, value: Any, ttl: float | None = None, session: bool = False) -> None:
        """
        Store a value.

        Args:
            key: Cache key
            value: Payload
            ttl: Seconds until expiry (default_ttl when omitted)
            session: Also store in the session tier
        """
        ttl = self.default_ttl if ttl is None else ttl
        self.durable.set(key, value, ttl)
        if session:
            self.session.set(key, value, ttl)

    def remove(self, key: str) -> None:
        self.durable.remove(key)
        self.session.remove(key)

    def clear(self) -> None:
        self.durable.clear()
        self.session.clear()

    def keys(self, prefix: str = "") -> list[str]:
        return self.durable.keys(prefix)

    def sweep_expired(self) -> int:
        return self.durable.sweep_expired()

    def status(self, game_prefix: str = "pbp_") -> CacheStatus:
        """Get current cache status."""
        durable_keys = self.durable.keys()
        return CacheStatus(
            session_entries=len(self.session),
            durable_entries=len(durable_keys),
            games_cached=sum(1 for k in durable_keys if k.startswith(game_prefix)),
            cache_size_mb=self.durable.size_mb(),
        )

    def close(self) -> None:
        self.durable.close()

    def __enter__(self) -> TieredCache:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
