"""
Cache Manager

Two-level cache (memory, optional disk) with per-entry TTL used to hold
upstream search results keyed by compiled query signature.
"""

import hashlib
import logging
import pickle
import shutil
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from cachetools import TTLCache

from walltaker.core.config.models import CacheSettings
from walltaker.core.exceptions import CacheError, ErrorCode


T = TypeVar('T')
logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Cache performance statistics."""
    hits: int = 0
    misses: int = 0
    writes: int = 0
    errors: int = 0
    disk_reads: int = 0
    disk_writes: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class CacheEntry:
    """Container for cached data with its own expiry instant."""

    def __init__(self, data: Any, ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize cache entry.

        Args:
            data: Data to cache
            ttl: Time-to-live in seconds
            clock: Time source, seconds as float
        """
        self._clock = clock
        self.data = data
        self.created_at = clock()
        self.expires_at = self.created_at + ttl if ttl else None
        self.access_count = 0

    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return self._clock() >= self.expires_at

    def get_data(self) -> Any:
        """Get cached data and update access stats."""
        if self.is_expired():
            raise ValueError("Cache entry has expired")

        self.access_count += 1
        return self.data


class CacheManager:
    """
    Cache for tag search results.

    Entries carry their own TTL, so short-lived ``order:random`` results and
    long-lived regular results share one store. Expired entries are dropped
    lazily when read. Backend failures never propagate: a failed read is a
    miss and a failed write is skipped.
    """

    def __init__(self, config: Optional[CacheSettings] = None,
                 clock: Callable[[], float] = time.time):
        """
        Initialize cache manager.

        Args:
            config: Cache configuration
            clock: Time source used for expiry, defaults to time.time
        """
        self.config = config or CacheSettings()
        self.stats = CacheStats()
        self._clock = clock

        # The memory tier's global TTL is an upper bound, entries expire earlier on their own.
        self._memory_cache: TTLCache = TTLCache(
            maxsize=self.config.memory_cache_size,
            ttl=self.config.default_ttl,
            timer=clock
        )

        self._lock = threading.RLock()

        self._disk_cache_dir: Optional[Path] = None
        if self.config.enable_disk_cache:
            self._setup_disk_cache()

    def _setup_disk_cache(self) -> None:
        """Setup disk cache directory."""
        if self.config.cache_dir:
            self._disk_cache_dir = Path(self.config.cache_dir)
        else:
            self._disk_cache_dir = Path(tempfile.gettempdir()) / "walltaker_cache"

        self._disk_cache_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Disk cache directory: {self._disk_cache_dir}")

    def _get_cache_key(self, key: str) -> str:
        """Hash keys so they are valid filenames of constant length."""
        return hashlib.sha256(key.encode()).hexdigest()

    def _get_disk_path(self, cache_key: str) -> Path:
        """Get disk cache file path."""
        if not self._disk_cache_dir:
            raise ValueError("Disk cache not enabled")

        cache_subdir = self._disk_cache_dir / cache_key[:2]
        cache_subdir.mkdir(exist_ok=True)

        return cache_subdir / f"{cache_key}.cache"

    def get(self, key: str, default: Optional[T] = None) -> Optional[T]:
        """
        Get value from cache.

        Args:
            key: Cache key
            default: Default value if not found

        Returns:
            Cached value, or default on miss, expiry or backend failure
        """
        with self._lock:
            try:
                value = self._read(key)
            except CacheError as e:
                self.stats.errors += 1
                logger.warning(f"Cache read failed, treating as miss: {e}")
                value = None

            if value is None:
                self.stats.misses += 1
                return default

            self.stats.hits += 1
            return value

    def _read(self, key: str) -> Optional[Any]:
        cache_key = self._get_cache_key(key)

        entry = self._memory_cache.get(cache_key)
        if entry is not None:
            if not entry.is_expired():
                return entry.get_data()
            del self._memory_cache[cache_key]

        if self._disk_cache_dir:
            return self._get_from_disk(cache_key)

        return None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds

        Returns:
            True if the value was stored
        """
        with self._lock:
            cache_key = self._get_cache_key(key)
            entry_ttl = ttl or self.config.default_ttl

            try:
                self._memory_cache[cache_key] = CacheEntry(value, entry_ttl, clock=self._clock)

                if self._disk_cache_dir:
                    self._set_to_disk(cache_key, value, entry_ttl)
            except (CacheError, ValueError) as e:
                self.stats.errors += 1
                logger.warning(f"Cache write skipped for {key}: {e}")
                return False

            self.stats.writes += 1
            return True

    def delete(self, key: str) -> bool:
        """
        Delete value from cache.

        Args:
            key: Cache key

        Returns:
            True if key was found and deleted
        """
        with self._lock:
            cache_key = self._get_cache_key(key)
            found = False

            if cache_key in self._memory_cache:
                del self._memory_cache[cache_key]
                found = True

            if self._disk_cache_dir:
                disk_path = self._get_disk_path(cache_key)
                if disk_path.exists():
                    disk_path.unlink()
                    found = True

            return found

    def clear(self) -> None:
        """Clear all cache entries."""
        with self._lock:
            self._memory_cache.clear()

            if self._disk_cache_dir and self._disk_cache_dir.exists():
                shutil.rmtree(self._disk_cache_dir)
                self._disk_cache_dir.mkdir(parents=True, exist_ok=True)

            self.stats = CacheStats()
            logger.info("Cache cleared")

    def _get_from_disk(self, cache_key: str) -> Optional[Any]:
        """Get value from disk cache."""
        try:
            disk_path = self._get_disk_path(cache_key)
            if not disk_path.exists():
                return None

            with open(disk_path, 'rb') as f:
                cache_data = pickle.load(f)

            if cache_data.get('expires_at') and self._clock() >= cache_data['expires_at']:
                disk_path.unlink()
                return None

            self.stats.disk_reads += 1
            remaining = cache_data['expires_at'] - self._clock() if cache_data.get('expires_at') else None
            self._memory_cache[cache_key] = CacheEntry(cache_data['data'], remaining, clock=self._clock)
            return cache_data['data']

        except (OSError, pickle.PickleError, EOFError, KeyError) as e:
            raise CacheError(
                f"Failed to read from disk cache: {e}",
                error_code=ErrorCode.CACHE_READ_FAILED,
                key=cache_key,
                cause=e
            )

    def _set_to_disk(self, cache_key: str, value: Any, ttl: float) -> None:
        """Set value to disk cache."""
        try:
            disk_path = self._get_disk_path(cache_key)
            now = self._clock()

            cache_data = {
                'data': value,
                'created_at': now,
                'expires_at': now + ttl,
                'ttl': ttl
            }

            with open(disk_path, 'wb') as f:
                pickle.dump(cache_data, f, protocol=pickle.HIGHEST_PROTOCOL)

            self.stats.disk_writes += 1

        except (OSError, pickle.PickleError) as e:
            raise CacheError(
                f"Failed to write to disk cache: {e}",
                error_code=ErrorCode.CACHE_WRITE_FAILED,
                key=cache_key,
                cause=e
            )

    def get_cache_info(self) -> Dict[str, Any]:
        """Get detailed cache information."""
        with self._lock:
            return {
                "config": {
                    "memory_cache_size": self.config.memory_cache_size,
                    "disk_cache_enabled": self._disk_cache_dir is not None,
                    "default_ttl": self.config.default_ttl,
                    "random_order_ttl": self.config.random_order_ttl,
                },
                "stats": {
                    "hits": self.stats.hits,
                    "misses": self.stats.misses,
                    "hit_rate": self.stats.hit_rate,
                    "writes": self.stats.writes,
                    "errors": self.stats.errors,
                },
                "memory_cache": {
                    "current_size": len(self._memory_cache),
                    "max_size": self._memory_cache.maxsize,
                },
            }
