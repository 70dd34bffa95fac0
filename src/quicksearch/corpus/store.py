"""Corpus store: the ordered, id-unique record set searched by a session."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Sequence
from typing import Any

from quicksearch.corpus.models import RawRecord, Record

LOGGER = logging.getLogger(__name__)


class Corpus:
    """Immutable ordered snapshot of Records.

    Insertion order is scan order. A corpus is never patched: a rebuild
    produces a new Corpus that replaces the old one wholesale.
    """

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._records: tuple[Record, ...] = tuple(records)
        self._by_id: dict[str, Record] = {}
        for record in self._records:
            if record.id in self._by_id:
                raise ValueError(f"Duplicate record id in corpus: {record.id}")
            self._by_id[record.id] = record

    @classmethod
    def from_raw(cls, raw_records: Iterable[RawRecord]) -> Corpus:
        """Normalize scanned records into a Corpus.

        Records without a usable name are dropped here so the matcher never
        has to deal with them. Positions keep the source scan index, so a
        dropped row leaves a gap rather than shifting later ids.
        """
        records: list[Record] = []
        for position, raw in enumerate(raw_records):
            name = (raw.name or "").strip()
            if not name:
                LOGGER.debug("Skipping nameless record at position %d", position)
                continue
            records.append(
                Record(
                    position=position,
                    name=name,
                    description=(raw.description or "").strip(),
                    version=raw.version or None,
                    is_enabled=bool(raw.is_enabled),
                    action_ref=raw.action_ref or None,
                    source_ref=raw.source_ref,
                )
            )
        return cls(records)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def records(self) -> tuple[Record, ...]:
        return self._records

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __getitem__(self, index: int) -> Record:
        return self._records[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Corpus):
            return NotImplemented
        return self._records == other._records

    def get(self, record_id: str) -> Record | None:
        return self._by_id.get(record_id)

    def head(self, limit: int) -> list[Record]:
        """Return the first *limit* records in corpus order."""
        return list(self._records[: max(limit, 0)])

    def leading_names(self, limit: int) -> list[str]:
        return [r.name for r in self._records[:limit]]

    # ------------------------------------------------------------------
    # Handle re-association
    # ------------------------------------------------------------------

    def with_source_refs(self, resolve: Any) -> Corpus:
        """Return a copy with ``source_ref`` re-attached via *resolve(position)*.

        Used after loading from the persistent cache, where handles are
        never stored. Records whose position resolves to None keep no handle.
        """
        return Corpus(r.with_source_ref(resolve(r.position)) for r in self._records)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [r.to_dict() for r in self._records]

    @classmethod
    def from_dicts(cls, rows: Sequence[dict[str, Any]]) -> Corpus:
        """Rebuild a corpus from ``to_dicts()`` output.

        Raises:
            KeyError, ValueError, TypeError: On malformed rows.
        """
        return cls(Record.from_dict(row) for row in rows)
