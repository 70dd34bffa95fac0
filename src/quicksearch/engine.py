"""Search engine facade: corpus lifecycle, sessions, and notifications.

Corpus lifecycle on every open_session():
  1) Load the persistent snapshot (any read failure is a miss)
  2) Valid (schema + age + live count) → use it, re-attach source handles,
     schedule a deferred integrity spot check
  3) Otherwise → scan the source, persist (best effort), use the scan
  4) Source unreadable and no valid snapshot → SourceUnavailable

A rebuilt corpus replaces the old one wholesale in every open session.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum

from quicksearch.cache.persistent import CacheMetadata, PersistentCache
from quicksearch.config import QuickSearchConfig
from quicksearch.corpus.models import Record
from quicksearch.corpus.sources import RecordSource
from quicksearch.corpus.store import Corpus
from quicksearch.errors import CacheUnavailable, SourceUnavailable
from quicksearch.events import (
    CACHE_REBUILT,
    CACHE_STATUS_CHANGED,
    RESULT_READY,
    EventEmitter,
)
from quicksearch.search.session import SearchSession

LOGGER = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    FRESH = "fresh"
    STALE = "stale"
    ERROR = "error"
    LOADING = "loading"


class QuickSearchEngine:
    """Owns the corpus and the sessions searching it.

    Args:
        source: Collaborator that scans records from the host environment.
        cache: Persistent snapshot store; None runs in-memory only.
        config: Engine configuration; defaults apply when omitted.
        events: Notification sink; a private emitter is created if omitted.
    """

    def __init__(
        self,
        source: RecordSource,
        cache: PersistentCache | None = None,
        config: QuickSearchConfig | None = None,
        events: EventEmitter | None = None,
    ) -> None:
        self.source = source
        self.cache = cache
        self.config = config or QuickSearchConfig()
        self.events = events or EventEmitter()
        self._corpus: Corpus | None = None
        self._meta: CacheMetadata | None = None
        self._status = CacheStatus.LOADING
        self._sessions: dict[str, SearchSession] = {}
        self._integrity_handle: asyncio.TimerHandle | None = None

    @property
    def corpus(self) -> Corpus | None:
        return self._corpus

    @property
    def sessions(self) -> list[SearchSession]:
        return list(self._sessions.values())

    # ------------------------------------------------------------------
    # Corpus lifecycle
    # ------------------------------------------------------------------

    def load_corpus(self) -> Corpus:
        """Return a ready corpus, from the persistent cache when valid.

        Raises:
            SourceUnavailable: No valid snapshot and the source is unreadable.
        """
        cached = self.cache.load() if self.cache is not None else None
        if cached is not None and self.cache is not None:
            live_count = self.source.current_record_count()
            if self.cache.is_valid(cached.meta, live_count, self.config.cache.max_age_ms):
                LOGGER.info("Using cached corpus (%d records)", len(cached.corpus))
                self._meta = cached.meta
                self._install(cached.corpus.with_source_refs(self.source.resolve_ref))
                self._set_status(CacheStatus.FRESH, "cached")
                self.schedule_integrity_check()
                return self._corpus

        LOGGER.info("Corpus cache %s, scanning fresh data", "expired" if cached else "missing")
        self._set_status(CacheStatus.STALE, "expired" if cached else "missing")
        return self._scan_and_persist()

    def _scan(self) -> tuple[Corpus, int, float]:
        """Scan the source. Returns (corpus, raw record count, scan ms).

        Touches only the source, so it may run on a worker thread.
        """
        start = time.perf_counter()
        raw_records = self.source.scan_records()
        corpus = Corpus.from_raw(raw_records)
        return corpus, len(raw_records), (time.perf_counter() - start) * 1000.0

    def _scan_failed(self) -> None:
        LOGGER.warning("Record source unavailable, cannot scan")
        self._set_status(CacheStatus.ERROR, "scan")

    def _scan_and_persist(self) -> Corpus:
        try:
            scanned = self._scan()
        except SourceUnavailable:
            self._scan_failed()
            raise
        return self._persist(*scanned)

    def _persist(self, corpus: Corpus, raw_count: int, scan_ms: float) -> Corpus:
        self._install(corpus)

        if self.cache is not None:
            meta = self.cache.save(corpus, record_count=raw_count, scan_ms=scan_ms)
            if meta is not None:
                self._meta = meta
                self._set_status(CacheStatus.FRESH, "rebuilt")
                self.events.emit(
                    CACHE_REBUILT,
                    record_count=len(corpus),
                    scan_ms=scan_ms,
                    timestamp=meta.timestamp_ms,
                )
        return corpus

    def _install(self, corpus: Corpus) -> None:
        self._corpus = corpus
        for session in self._sessions.values():
            session.replace_corpus(corpus)

    async def rebuild_cache(self) -> int:
        """Drop the snapshot, rescan, persist. Returns the new record count.

        The source scan runs in the loop's default executor; installing the
        corpus, saving it and emitting events happen back on the loop.

        Raises:
            CacheUnavailable: The source cannot be scanned right now.
        """
        LOGGER.info("Force rebuilding corpus cache")
        if self.cache is not None:
            self.cache.clear()
        loop = asyncio.get_running_loop()
        try:
            scanned = await loop.run_in_executor(None, self._scan)
        except SourceUnavailable as exc:
            self._scan_failed()
            raise CacheUnavailable(
                f"Cannot rebuild cache: {exc} Return to a view where records can be scanned."
            ) from exc
        return len(self._persist(*scanned))

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def schedule_integrity_check(self) -> asyncio.TimerHandle | None:
        """Defer ``check_integrity`` so it never delays the first results.

        Without a running event loop the check is skipped.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; deferred integrity check skipped")
            return None
        if self._integrity_handle is not None:
            self._integrity_handle.cancel()
        delay = self.config.cache.integrity_check_delay_ms / 1000.0
        self._integrity_handle = loop.call_later(delay, self.check_integrity)
        return self._integrity_handle

    def check_integrity(self) -> bool:
        """Spot-check the corpus against the source; rescan on mismatch."""
        self._integrity_handle = None
        if self.cache is None or self._corpus is None:
            return True
        expected = self._meta.record_count if self._meta is not None else None
        if self.cache.verify_integrity(self._corpus, self.source, expected_count=expected):
            return True

        LOGGER.info("Cache integrity check failed, refreshing corpus")
        self._set_status(CacheStatus.STALE, "integrity")
        try:
            self._scan_and_persist()
        except SourceUnavailable as exc:
            LOGGER.warning("Integrity refresh skipped: %s", exc)
        return False

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_cache_status(self) -> CacheStatus:
        return self._status

    def cache_status_text(self) -> str:
        """Short human-readable status line for a UI footer."""
        if self._status is CacheStatus.FRESH:
            age_min = 0
            if self._meta is not None and self.cache is not None:
                age_min = round((self.cache.now_ms() - self._meta.timestamp_ms) / 60_000)
            return f"Cache: Fresh ({age_min}m old)"
        if self._status is CacheStatus.STALE:
            return "Cache: Refreshed"
        if self._status is CacheStatus.ERROR:
            return "Cache: Error (using fresh data)"
        return "Cache: Loading..."

    def _set_status(self, status: CacheStatus, source: str) -> None:
        self._status = status
        self.events.emit(CACHE_STATUS_CHANGED, status=status.value, source=source)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def open_session(self) -> SearchSession:
        """Load the corpus and open a new session over it.

        Raises:
            SourceUnavailable: No valid snapshot and nothing to scan.
        """
        corpus = self.load_corpus()
        search = self.config.search
        session = SearchSession(
            corpus,
            max_results=search.max_display_items,
            debounce_delay_ms=search.debounce_delay_ms,
            max_query_length=search.max_query_length,
            pins=self.config.pins,
            on_results=self._deliver,
        )
        self._sessions[session.id] = session
        LOGGER.debug("Opened session %s over %d records", session.id, len(corpus))
        return session

    def submit_query(self, session: SearchSession, text: str) -> None:
        """Debounced search; results arrive as a ``result-ready`` event."""
        session.submit(text)

    def move_selection(self, session: SearchSession, delta: int) -> int:
        return session.move_selection(delta)

    def confirm_selection(self, session: SearchSession) -> Record | None:
        return session.confirm()

    def close_session(self, session: SearchSession) -> None:
        session.close()
        self._sessions.pop(session.id, None)

    def _deliver(self, session: SearchSession, results: list[Record], query: str) -> None:
        self.events.emit(RESULT_READY, session_id=session.id, results=results, query=query)
