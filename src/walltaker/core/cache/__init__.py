"""
Core Cache Module

Provides TTL-based caching for upstream search results:
- Memory cache with per-entry expiry
- Optional disk persistence
- Failures degrade to cache misses
"""

from .manager import CacheManager, CacheEntry, CacheStats

__all__ = [
    'CacheManager',
    'CacheEntry',
    'CacheStats',
]
