"""quicksearch: keyboard-driven fuzzy search over a cached record set."""

from quicksearch.corpus.models import RawRecord, Record
from quicksearch.corpus.store import Corpus
from quicksearch.engine import CacheStatus, QuickSearchEngine
from quicksearch.errors import (
    CacheReadError,
    CacheUnavailable,
    CacheWriteError,
    QuickSearchError,
    SourceUnavailable,
)
from quicksearch.search.matcher import PinRule, rank

__all__ = [
    "CacheReadError",
    "CacheStatus",
    "CacheUnavailable",
    "CacheWriteError",
    "Corpus",
    "PinRule",
    "QuickSearchEngine",
    "QuickSearchError",
    "RawRecord",
    "Record",
    "SourceUnavailable",
    "rank",
]
