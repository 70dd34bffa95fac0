"""Exception taxonomy for quicksearch.

Cache-layer errors are recovered locally by the cache and engine; only
``SourceUnavailable`` (and its ``CacheUnavailable`` subclass) ever reaches a
caller, and only when there is no other way to produce a corpus.
"""

from __future__ import annotations


class QuickSearchError(Exception):
    """Base class for all quicksearch errors."""


class CacheReadError(QuickSearchError):
    """Persistent cache entry is missing, corrupt, or from another schema."""


class CacheWriteError(QuickSearchError):
    """Persisting the corpus snapshot failed (disk full, read-only, locked)."""


class SourceUnavailable(QuickSearchError):
    """The record source cannot be scanned in its current context."""


class CacheUnavailable(SourceUnavailable):
    """An explicit cache rebuild was requested but the source is unreadable."""
