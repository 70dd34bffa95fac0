"""Record sources: the scanning collaborators that feed the corpus.

A source reads the host environment (an admin page, a plugin directory,
an export file) and returns unnormalized records. The engine only talks to
sources through the ``RecordSource`` protocol.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from quicksearch.corpus.models import RawRecord
from quicksearch.errors import SourceUnavailable


class RecordSource(Protocol):
    """Operations the engine requires from a record source."""

    def scan_records(self) -> Sequence[RawRecord]:
        """Return all records in scan order.

        Raises:
            SourceUnavailable: If the source cannot be read right now.
        """
        ...

    def current_record_count(self) -> int | None:
        """Return the live record count, or None when it cannot be counted."""
        ...

    def leading_names(self, limit: int) -> list[str] | None:
        """Return the names of the first *limit* live records, or None."""
        ...

    def resolve_ref(self, position: int) -> Any:
        """Return the live handle for the record at *position*, or None."""
        ...


class StaticSource:
    """In-memory source over a fixed list of records.

    ``available=False`` simulates a host context where nothing can be
    scanned (e.g. a status page that only knows about the cache).
    """

    def __init__(self, records: Sequence[RawRecord] = (), *, available: bool = True) -> None:
        self.records: list[RawRecord] = list(records)
        self.available = available
        self.scan_count = 0

    def scan_records(self) -> Sequence[RawRecord]:
        if not self.available:
            raise SourceUnavailable("No record list available for scanning.")
        self.scan_count += 1
        return list(self.records)

    def current_record_count(self) -> int | None:
        return len(self.records) if self.available else None

    def leading_names(self, limit: int) -> list[str] | None:
        if not self.available:
            return None
        return [(r.name or "").strip() for r in self.records[:limit]]

    def resolve_ref(self, position: int) -> Any:
        if not self.available or not 0 <= position < len(self.records):
            return None
        return self.records[position].source_ref


class JsonFileSource:
    """Read records from a JSON export on disk.

    Supported top-level shapes:
    - **Array of objects** ``[{"name": ...}, ...]``
    - **Wrapped array** ``{"records": [{"name": ...}, ...]}``

    Recognised keys per object: ``name``, ``description``, ``version``,
    ``is_enabled`` (alias ``active``), ``action_ref`` (alias
    ``settings_url``) and ``source_ref`` (alias ``folder``). Unknown keys
    are ignored. The ``source_ref`` handle defaults to the record's index
    in the file.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def scan_records(self) -> Sequence[RawRecord]:
        return [_raw_from_obj(i, obj) for i, obj in enumerate(self._load_items())]

    def current_record_count(self) -> int | None:
        try:
            return len(self._load_items())
        except SourceUnavailable:
            return None

    def leading_names(self, limit: int) -> list[str] | None:
        try:
            items = self._load_items()
        except SourceUnavailable:
            return None
        return [str(obj.get("name") or "").strip() for obj in items[:limit]]

    def resolve_ref(self, position: int) -> Any:
        try:
            items = self._load_items()
        except SourceUnavailable:
            return None
        if not 0 <= position < len(items):
            return None
        return _raw_from_obj(position, items[position]).source_ref

    def _load_items(self) -> list[dict[str, Any]]:
        if not self.path.is_file():
            raise SourceUnavailable(f"Record file not found: {self.path}")
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SourceUnavailable(f"Cannot read record file {self.path}: {exc}") from exc

        if isinstance(data, dict):
            data = data.get("records")
        if not isinstance(data, list):
            raise SourceUnavailable(
                f"Record file {self.path} must contain a JSON array of objects "
                "or an object with a 'records' array."
            )
        return [obj for obj in data if isinstance(obj, dict)]


def _raw_from_obj(index: int, obj: dict[str, Any]) -> RawRecord:
    enabled = obj.get("is_enabled", obj.get("active", False))
    return RawRecord(
        name=str(obj.get("name") or ""),
        description=str(obj.get("description") or ""),
        version=_opt_str(obj.get("version")),
        is_enabled=bool(enabled),
        action_ref=_opt_str(obj.get("action_ref", obj.get("settings_url"))),
        source_ref=obj.get("source_ref", obj.get("folder", index)),
    )


def _opt_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
