"""
TTL key-value cache adapters.
"""

from src.bump_radar.adapters.cache.memory_cache import InMemoryKeyValueCache
from src.bump_radar.adapters.cache.sqlite_cache import SQLiteKeyValueCache
from src.bump_radar.adapters.cache.sweeper import CacheSweeper

__all__ = [
    "CacheSweeper",
    "InMemoryKeyValueCache",
    "SQLiteKeyValueCache",
]
