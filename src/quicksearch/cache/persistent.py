"""Persistent corpus cache backed by SQLite.

Two blobs are stored, both JSON text:
  quicksearch.records  the serialized corpus (no source handles)
  quicksearch.meta     CacheMetadata (timestamp, schema, record count)

Validity:
  schema_version == current  AND  now - timestamp <= max_age
  AND record_count == live count   (count check skipped when live count is None)

Every read failure is a cache miss; every write failure is logged and
swallowed. Nothing in this module raises to the caller.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import time
import warnings
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from quicksearch.corpus.sources import RecordSource
from quicksearch.corpus.store import Corpus
from quicksearch.db.connection import Database
from quicksearch.db.repository import BlobRepository
from quicksearch.db.schema import initialize
from quicksearch.errors import CacheReadError, CacheWriteError

LOGGER = logging.getLogger(__name__)

CACHE_KEY = "quicksearch.records"
CACHE_META_KEY = "quicksearch.meta"
SCHEMA_VERSION = "1.1"
DEFAULT_MAX_AGE_MS = 60 * 60 * 1000
INTEGRITY_SAMPLE_SIZE = 3


def _now_ms() -> float:
    return time.time() * 1000.0


@dataclass(frozen=True)
class CacheMetadata:
    """Metadata written next to every corpus snapshot."""

    timestamp_ms: float
    schema_version: str
    record_count: int
    scan_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp_ms,
            "version": self.schema_version,
            "record_count": self.record_count,
            "scan_ms": self.scan_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheMetadata:
        return cls(
            timestamp_ms=float(data["timestamp"]),
            schema_version=str(data["version"]),
            record_count=int(data["record_count"]),
            scan_ms=float(data.get("scan_ms", 0.0)),
        )


@dataclass(frozen=True)
class CachedCorpus:
    corpus: Corpus
    meta: CacheMetadata


@dataclass(frozen=True)
class CacheInfo:
    """Diagnostic snapshot of the persistent cache.

    Attributes:
        exists: Both blobs are present and parse.
        record_count: Records in the stored snapshot.
        size_bytes: Byte size of the records blob.
        meta_size_bytes: Byte size of the metadata blob.
        age_ms: Milliseconds since the snapshot was written.
        is_valid: Result of ``is_valid`` without a live count.
        error: Why the cache could not be read, when ``exists`` is False.
    """

    exists: bool
    record_count: int = 0
    size_bytes: int = 0
    meta_size_bytes: int = 0
    timestamp_ms: float | None = None
    schema_version: str | None = None
    age_ms: float | None = None
    is_valid: bool = False
    error: str | None = None


class PersistentCache:
    """Corpus snapshot store that survives process restarts.

    Args:
        db: Path to the SQLite file, or an already-open connection (the
            cache then never closes it).
        schema_version: Identifier of the current record schema; snapshots
            written under another identifier are ignored.
        max_age_ms: Default freshness window for ``is_valid``.
        clock: Returns "now" in epoch milliseconds (injectable for tests).
    """

    def __init__(
        self,
        db: Path | str | sqlite3.Connection,
        *,
        schema_version: str = SCHEMA_VERSION,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._db = db
        self.schema_version = schema_version
        self.max_age_ms = max_age_ms
        self._clock = clock or _now_ms

    def now_ms(self) -> float:
        return self._clock()

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def load(self) -> CachedCorpus | None:
        """Return the stored corpus + metadata, or None on any read failure."""
        try:
            return self._read()
        except CacheReadError as exc:
            LOGGER.info("Persistent cache miss: %s", exc)
            return None

    def _read(self) -> CachedCorpus:
        try:
            with self._open() as conn:
                blobs = BlobRepository(conn).get_many([CACHE_KEY, CACHE_META_KEY])
        except (sqlite3.Error, OSError) as exc:
            raise CacheReadError(f"cache database unreadable: {exc}") from exc

        if CACHE_KEY not in blobs or CACHE_META_KEY not in blobs:
            raise CacheReadError("cache entries not found")

        try:
            meta = CacheMetadata.from_dict(json.loads(blobs[CACHE_META_KEY]))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise CacheReadError(f"corrupt cache metadata: {exc}") from exc

        if meta.schema_version != self.schema_version:
            raise CacheReadError(
                f"schema mismatch (cached {meta.schema_version!r}, "
                f"current {self.schema_version!r})"
            )

        try:
            rows = json.loads(blobs[CACHE_KEY])
            if not isinstance(rows, list):
                raise TypeError("records blob is not a list")
            corpus = Corpus.from_dicts(rows)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise CacheReadError(f"corrupt cache records: {exc}") from exc

        return CachedCorpus(corpus=corpus, meta=meta)

    def is_valid(
        self,
        meta: CacheMetadata,
        current_record_count: int | None,
        max_age_ms: int | None = None,
    ) -> bool:
        """Return True when *meta* describes a usable snapshot.

        Args:
            meta: Metadata from ``load()``.
            current_record_count: Live record count, or None to skip the
                count comparison (e.g. when the source cannot be counted).
            max_age_ms: Freshness window; defaults to the cache's own.
        """
        if meta.schema_version != self.schema_version:
            return False

        max_age = self.max_age_ms if max_age_ms is None else max_age_ms
        if self.now_ms() - meta.timestamp_ms > max_age:
            return False

        if current_record_count is not None:
            return meta.record_count == current_record_count
        return True

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def save(
        self,
        corpus: Corpus,
        record_count: int | None = None,
        scan_ms: float = 0.0,
    ) -> CacheMetadata | None:
        """Persist *corpus* and return its metadata, or None if the write failed.

        Args:
            corpus: Snapshot to store; ``source_ref`` handles are not written.
            record_count: Live record count at scan time. Defaults to
                ``len(corpus)``; pass the raw count when ingestion dropped
                nameless rows so later count checks compare like with like.
            scan_ms: How long the scan took (diagnostics only).
        """
        meta = CacheMetadata(
            timestamp_ms=self.now_ms(),
            schema_version=self.schema_version,
            record_count=len(corpus) if record_count is None else record_count,
            scan_ms=scan_ms,
        )
        try:
            self._write(corpus, meta)
        except CacheWriteError as exc:
            LOGGER.warning("Failed to persist corpus cache: %s", exc)
            warnings.warn(
                f"Corpus cache not saved ({exc}); continuing in memory only.",
                UserWarning,
                stacklevel=2,
            )
            return None

        LOGGER.info("Cached %d records (scan took %.2fms)", len(corpus), scan_ms)
        return meta

    def _write(self, corpus: Corpus, meta: CacheMetadata) -> None:
        try:
            payload = {
                CACHE_KEY: json.dumps(corpus.to_dicts(), ensure_ascii=False),
                CACHE_META_KEY: json.dumps(meta.to_dict()),
            }
            with self._open() as conn:
                BlobRepository(conn).put_many(payload)
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            raise CacheWriteError(str(exc)) from exc

    def clear(self) -> None:
        """Remove the snapshot and its metadata (idempotent)."""
        try:
            with self._open() as conn:
                BlobRepository(conn).delete(CACHE_KEY, CACHE_META_KEY)
        except (sqlite3.Error, OSError) as exc:
            LOGGER.warning("Failed to clear corpus cache: %s", exc)
            return
        LOGGER.info("Corpus cache cleared")

    # ------------------------------------------------------------------
    # Integrity + diagnostics
    # ------------------------------------------------------------------

    def verify_integrity(
        self,
        corpus: Corpus,
        source: RecordSource,
        expected_count: int | None = None,
    ) -> bool:
        """Spot-check *corpus* against the live *source*.

        Compares the live record count with *expected_count* (default
        ``len(corpus)``), then the first few live names with the records at
        the same scan positions. A source that cannot be counted passes.
        """
        expected = len(corpus) if expected_count is None else expected_count
        live_count = source.current_record_count()
        if live_count is not None and live_count != expected:
            LOGGER.info(
                "Cache integrity check failed: %d live records, %d cached",
                live_count,
                expected,
            )
            return False

        live_names = source.leading_names(INTEGRITY_SAMPLE_SIZE)
        if not live_names:
            return True
        for record in corpus:
            if record.position >= len(live_names):
                break
            if record.name != live_names[record.position]:
                LOGGER.info(
                    "Cache integrity spot check failed at position %d: %r != %r",
                    record.position,
                    record.name,
                    live_names[record.position],
                )
                return False
        return True

    def info(self) -> CacheInfo:
        """Return a diagnostic snapshot; never raises."""
        try:
            cached = self._read()
            with self._open() as conn:
                repo = BlobRepository(conn)
                size = repo.size(CACHE_KEY)
                meta_size = repo.size(CACHE_META_KEY)
        except (CacheReadError, sqlite3.Error, OSError) as exc:
            return CacheInfo(exists=False, error=str(exc))

        meta = cached.meta
        return CacheInfo(
            exists=True,
            record_count=len(cached.corpus),
            size_bytes=size,
            meta_size_bytes=meta_size,
            timestamp_ms=meta.timestamp_ms,
            schema_version=meta.schema_version,
            age_ms=self.now_ms() - meta.timestamp_ms,
            is_valid=self.is_valid(meta, None),
        )

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    @contextmanager
    def _open(self) -> Iterator[sqlite3.Connection]:
        if isinstance(self._db, sqlite3.Connection):
            initialize(self._db)
            yield self._db
            return
        with Database(self._db) as conn:
            initialize(conn)
            yield conn
