"""Query session controller.

One SearchSession per open search box. It owns all transient state: the
current and previous query, the previous result set used for incremental
filtering, the selection cursor, and the in-memory query → results cache.

Search path for a (sanitized, normalized) query q:
  1) blank          → head of the corpus, incremental state reset
  2) cached         → stored result list
  3) incremental    → rank within previous results when q extends the
                      previous query and those results were not cut off
                      at max_results; rerun on the full corpus if that
                      yields fewer than FUZZY_CANDIDATE_FLOOR results
  4) full           → rank over the whole corpus
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Iterable
from enum import Enum

from quicksearch.corpus.models import Record
from quicksearch.corpus.store import Corpus
from quicksearch.search.debounce import DEFAULT_DELAY_MS, Debouncer
from quicksearch.search.matcher import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_PINS,
    FUZZY_CANDIDATE_FLOOR,
    PinRule,
    rank,
)
from quicksearch.search.query import MAX_QUERY_LENGTH, normalize_query, sanitize_query

LOGGER = logging.getLogger(__name__)

ResultCallback = Callable[["SearchSession", list[Record], str], None]


class SessionState(str, Enum):
    IDLE = "idle"
    OPEN = "open"
    SEARCHING = "searching"
    SETTLED = "settled"


class SearchSession:
    """Transient search state for one open search box.

    Args:
        corpus: Snapshot to search. Replaced via ``replace_corpus``.
        max_results: Result cap per query.
        debounce_delay_ms: Quiet period before a submitted query runs.
        max_query_length: Sanitizer length cap.
        pins: Pinning rules passed to the ranker.
        on_results: Called as ``on_results(session, results, query)`` after
            every debounced search.
    """

    def __init__(
        self,
        corpus: Corpus,
        *,
        max_results: int = DEFAULT_MAX_RESULTS,
        debounce_delay_ms: int = DEFAULT_DELAY_MS,
        max_query_length: int = MAX_QUERY_LENGTH,
        pins: Iterable[PinRule] = DEFAULT_PINS,
        on_results: ResultCallback | None = None,
    ) -> None:
        self.id = uuid.uuid4().hex
        self.max_results = max_results
        self.max_query_length = max_query_length
        self.pins = tuple(pins)
        self._corpus = corpus
        self._debouncer = Debouncer(debounce_delay_ms)
        self._on_results = on_results

        self.current_query = ""
        self.previous_query = ""
        self.previous_results: list[Record] = []
        self.result_cache: dict[str, tuple[Record, ...]] = {}
        self.results: list[Record] = corpus.head(max_results)
        self.selection = 0
        self.last_mode = "empty"
        # Normalized queries in the order the matcher path actually ran.
        self.search_log: list[str] = []
        self.state = SessionState.OPEN

    @property
    def corpus(self) -> Corpus:
        return self._corpus

    @property
    def is_open(self) -> bool:
        return self.state is not SessionState.IDLE

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    # ------------------------------------------------------------------
    # Query input
    # ------------------------------------------------------------------

    def submit(self, text: str) -> None:
        """Debounce a query-text change. Requires a running event loop."""
        if not self.is_open:
            LOGGER.debug("Ignoring query for closed session %s", self.id)
            return
        self.current_query = sanitize_query(text, self.max_query_length)
        self.state = SessionState.SEARCHING
        self._debouncer.call(self._run_debounced, text)

    def _run_debounced(self, text: str) -> None:
        if not self.is_open:
            return
        results = self.search(text)
        if self._on_results is not None:
            self._on_results(self, results, self.current_query)

    def search(self, text: str) -> list[Record]:
        """Run a search immediately and return the ranked results."""
        query = sanitize_query(text, self.max_query_length)
        key = normalize_query(query)
        self.current_query = query
        self.selection = 0
        self.search_log.append(key)

        if not key:
            results = self._corpus.head(self.max_results)
            self._settle(results, "empty")
            self.previous_query = ""
            self.previous_results = []
            return list(results)

        cached = self.result_cache.get(key)
        if cached is not None:
            results = list(cached)
            mode = "cache"
        else:
            results, mode = self._rank(key)
            self.result_cache[key] = tuple(results)

        self.previous_query = key
        self.previous_results = list(results)
        self._settle(results, mode)
        return list(results)

    def _rank(self, key: str) -> tuple[list[Record], str]:
        # Only a complete (untruncated) previous list can be narrowed.
        incremental = (
            bool(self.previous_query)
            and key.startswith(self.previous_query)
            and 0 < len(self.previous_results) < self.max_results
        )
        if incremental:
            results = rank(self.previous_results, key, self.max_results, self.pins)
            if len(results) >= FUZZY_CANDIDATE_FLOOR:
                return results, "incremental"
            # The narrowed pool can hide fuzzy/token matches; widen again.
            LOGGER.debug("Incremental pool too small for %r, searching full corpus", key)
            return rank(self._corpus.records, key, self.max_results, self.pins), "incremental-fallback"
        return rank(self._corpus.records, key, self.max_results, self.pins), "full"

    def _settle(self, results: list[Record], mode: str) -> None:
        self.results = list(results)
        self.last_mode = mode
        self.state = SessionState.SETTLED
        LOGGER.debug("Search %r settled via %s: %d results", self.current_query, mode, len(results))

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def move_selection(self, delta: int) -> int:
        """Move the cursor by *delta*, wrapping at both ends. No re-search."""
        if not self.results:
            self.selection = 0
            return 0
        self.selection = (self.selection + delta) % len(self.results)
        return self.selection

    def selected(self) -> Record | None:
        if not self.results:
            return None
        return self.results[self.selection]

    def confirm(self) -> Record | None:
        """Cancel any pending search and return the selected record."""
        self._debouncer.cancel()
        if self.state is SessionState.SEARCHING:
            self.state = SessionState.SETTLED
        return self.selected()

    def selected_action(self) -> str | None:
        """Return the selected record's action reference (e.g. settings URL)."""
        record = self.confirm()
        return record.action_ref if record is not None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def replace_corpus(self, corpus: Corpus) -> None:
        """Swap in a rebuilt corpus; cached and incremental state is dropped."""
        self._corpus = corpus
        self.result_cache.clear()
        self.previous_query = ""
        self.previous_results = []

    def close(self) -> None:
        """Cancel pending work and drop transient state."""
        self._debouncer.cancel()
        self.previous_query = ""
        self.previous_results = []
        self.result_cache.clear()
        self.state = SessionState.IDLE
