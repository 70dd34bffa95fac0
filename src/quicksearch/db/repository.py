"""Key-value repository over the ``cache_blobs`` table."""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping


class BlobRepository:
    """Data access layer for named text blobs.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with the schema initialised
                (see quicksearch.db.schema.initialize).
        """
        self._conn = conn

    def get(self, key: str) -> str | None:
        """Return the stored value for *key*, or None if missing."""
        row = self._conn.execute(
            "SELECT value FROM cache_blobs WHERE key = ?", (key,)
        ).fetchone()
        return row["value"] if row else None

    def get_many(self, keys: list[str]) -> dict[str, str]:
        """Return ``{key: value}`` for the keys that exist."""
        if not keys:
            return {}
        placeholders = ",".join("?" * len(keys))
        rows = self._conn.execute(
            f"SELECT key, value FROM cache_blobs WHERE key IN ({placeholders})",  # noqa: S608
            keys,
        ).fetchall()
        return {r["key"]: r["value"] for r in rows}

    def put(self, key: str, value: str) -> None:
        """Upsert *value* under *key* and reset updated_at."""
        self.put_many({key: value})

    def put_many(self, items: Mapping[str, str]) -> None:
        """Upsert several blobs in one transaction (all or nothing)."""
        with self._conn:
            self._conn.executemany(
                """
                INSERT INTO cache_blobs (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = datetime('now')
                """,
                list(items.items()),
            )

    def delete(self, *keys: str) -> int:
        """Delete the given keys. Returns the number of rows removed."""
        if not keys:
            return 0
        placeholders = ",".join("?" * len(keys))
        with self._conn:
            cur = self._conn.execute(
                f"DELETE FROM cache_blobs WHERE key IN ({placeholders})",  # noqa: S608
                keys,
            )
        return cur.rowcount

    def size(self, key: str) -> int:
        """Return the UTF-8 byte size of the blob under *key* (0 if missing)."""
        value = self.get(key)
        return len(value.encode("utf-8")) if value is not None else 0
