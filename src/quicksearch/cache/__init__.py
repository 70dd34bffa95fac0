"""Persistent corpus cache."""

from quicksearch.cache.persistent import (
    CacheInfo,
    CachedCorpus,
    CacheMetadata,
    PersistentCache,
)

__all__ = ["CacheInfo", "CachedCorpus", "CacheMetadata", "PersistentCache"]
