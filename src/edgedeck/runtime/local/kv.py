"""SQLite-backed key-value namespace.

Storage location: `<persist>/kv/<namespace id or binding>.sqlite`

Values are stored as text; metadata as JSON. Keys past their expiration are
invisible to every read and are purged lazily.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

MAX_LIST_LIMIT = 1000


@dataclass(frozen=True, slots=True)
class KVKey:
    name: str
    size: int
    expiration: int | None = None
    metadata: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "expiration": self.expiration,
            "metadata": self.metadata,
        }


@dataclass(frozen=True, slots=True)
class KVListResult:
    keys: list[KVKey]
    list_complete: bool
    cursor: str | None = None


class LocalKVNamespace:
    """Key-value namespace with prefix listing and cursor paging.

    The cursor is the last key name of the previous page.
    """

    SCHEMA = """
    CREATE TABLE IF NOT EXISTS entries (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        metadata TEXT,
        expiration INTEGER
    );
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(self.SCHEMA)
        self._conn.commit()
        self._lock = threading.Lock()

    def close(self) -> None:
        self._conn.close()

    async def get(self, key: str) -> str | None:
        value, _ = await self.get_with_metadata(key)
        return value

    async def get_with_metadata(self, key: str) -> tuple[str | None, Any]:
        """Value and metadata for ``key``; (None, None) if absent or expired."""
        row = await asyncio.to_thread(self._fetch, key)
        if row is None:
            return None, None
        return row["value"], _load_metadata(row["metadata"])

    async def put(
        self,
        key: str,
        value: Any,
        metadata: Any = None,
        expiration_ttl: int | None = None,
    ) -> None:
        """Store a value. Non-string values are stored as JSON text."""
        if not key:
            raise ValueError("key must not be empty")
        text = value if isinstance(value, str) else json.dumps(value)
        expiration = int(time.time()) + int(expiration_ttl) if expiration_ttl else None
        await asyncio.to_thread(
            self._write,
            "INSERT OR REPLACE INTO entries (key, value, metadata, expiration) VALUES (?, ?, ?, ?)",
            (key, text, json.dumps(metadata) if metadata is not None else None, expiration),
        )

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._write, "DELETE FROM entries WHERE key = ?", (key,))

    async def list(
        self,
        prefix: str = "",
        limit: int = MAX_LIST_LIMIT,
        cursor: str | None = None,
    ) -> KVListResult:
        """List keys in name order, starting after ``cursor``."""
        limit = max(1, min(int(limit), MAX_LIST_LIMIT))
        rows = await asyncio.to_thread(self._scan, prefix, cursor or "", limit + 1)

        complete = len(rows) <= limit
        keys = [
            KVKey(
                name=row["key"],
                size=row["size"],
                expiration=row["expiration"],
                metadata=_load_metadata(row["metadata"]),
            )
            for row in rows[:limit]
        ]
        return KVListResult(
            keys=keys,
            list_complete=complete,
            cursor=None if complete else keys[-1].name,
        )

    # Blocking halves, run in a worker thread

    def _fetch(self, key: str) -> sqlite3.Row | None:
        with self._lock:
            self._purge_expired()
            return self._conn.execute(
                "SELECT value, metadata FROM entries WHERE key = ?", (key,)
            ).fetchone()

    def _write(self, sql: str, params: tuple[Any, ...]) -> None:
        with self._lock:
            self._conn.execute(sql, params)
            self._conn.commit()

    def _scan(self, prefix: str, after: str, count: int) -> list[sqlite3.Row]:
        with self._lock:
            self._purge_expired()
            return self._conn.execute(
                """
                SELECT key, length(CAST(value AS BLOB)) AS size, metadata, expiration
                FROM entries
                WHERE substr(key, 1, ?) = ? AND key > ?
                ORDER BY key
                LIMIT ?
                """,
                (len(prefix), prefix, after, count),
            ).fetchall()

    def _purge_expired(self) -> None:
        self._conn.execute(
            "DELETE FROM entries WHERE expiration IS NOT NULL AND expiration <= ?",
            (int(time.time()),),
        )
        self._conn.commit()


def _load_metadata(text: str | None) -> Any:
    return json.loads(text) if text else None
