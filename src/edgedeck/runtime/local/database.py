"""SQLite-backed database binding.

Storage location: `<persist>/d1/<database_id or database_name>.sqlite`

Mirrors the prepared-statement surface applications use against a database
binding: prepare a statement, bind positional parameters, then run it as
``all`` / ``run`` / ``first`` / ``raw``. Every result carries a ``meta``
block with duration, changes, last_row_id and rows_read.

Example:
    >>> db = LocalDatabase(Path(".edgedeck/state/d1/app_db.sqlite"))
    >>> await db.exec("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT)")
    >>> result = await db.prepare("INSERT INTO users (name) VALUES (?)").bind("Ann").run()
    >>> result.meta["changes"]
    1
"""

from __future__ import annotations

import asyncio
import sqlite3
import threading
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Outcome of one statement.

    Attributes:
        results: Rows as column -> value dicts (empty for most writes)
        meta: duration (ms), changes, last_row_id, rows_read
        success: Always True; failures raise sqlite3.Error instead
    """

    results: list[dict[str, Any]] = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "results": self.results, "meta": self.meta}


class PreparedStatement:
    """A statement with (optionally) bound parameters.

    ``bind`` returns a new statement so a prepared statement can be reused
    with different parameters.
    """

    __slots__ = ("_db", "sql", "params")

    def __init__(self, db: LocalDatabase, sql: str, params: tuple[Any, ...] = ()) -> None:
        self._db = db
        self.sql = sql
        self.params = params

    def bind(self, *params: Any) -> PreparedStatement:
        return PreparedStatement(self._db, self.sql, tuple(params))

    async def all(self) -> QueryResult:
        return await self._db._execute(self.sql, self.params)

    async def run(self) -> QueryResult:
        return await self._db._execute(self.sql, self.params)

    async def first(self, column: str | None = None) -> Any:
        """First row (or one column of it); None when there are no rows."""
        result = await self._db._execute(self.sql, self.params)
        if not result.results:
            return None
        row = result.results[0]
        if column is None:
            return row
        if column not in row:
            raise sqlite3.OperationalError(f"no such column: {column}")
        return row[column]

    async def raw(self) -> list[list[Any]]:
        result = await self._db._execute(self.sql, self.params)
        return [list(row.values()) for row in result.results]


class LocalDatabase:
    """One sqlite file per database binding.

    The connection is shared across requests; a lock serializes access.
    Statements run in a worker thread via ``asyncio.to_thread``.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(path), check_same_thread=False, isolation_level=None)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def prepare(self, sql: str) -> PreparedStatement:
        return PreparedStatement(self, sql)

    async def batch(self, statements: Sequence[PreparedStatement]) -> list[QueryResult]:
        """Run statements in one transaction; all or nothing."""
        return await asyncio.to_thread(self._batch, statements)

    def _batch(self, statements: Sequence[PreparedStatement]) -> list[QueryResult]:
        results: list[QueryResult] = []
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                for stmt in statements:
                    results.append(self._run_locked(stmt.sql, stmt.params))
                self._conn.execute("COMMIT")
            except Exception:
                self._conn.execute("ROLLBACK")
                raise
        return results

    async def exec(self, sql: str) -> dict[str, Any]:
        """Run one or more unparameterized statements.

        Returns:
            Dict with ``count`` (statements executed) and ``duration`` (ms)
        """
        started = time.perf_counter()
        await asyncio.to_thread(self._executescript, sql)
        count = sum(1 for part in sql.split(";") if part.strip())
        return {"count": count, "duration": _elapsed_ms(started)}

    def _executescript(self, sql: str) -> None:
        with self._lock:
            self._conn.executescript(sql)

    async def _execute(self, sql: str, params: tuple[Any, ...]) -> QueryResult:
        return await asyncio.to_thread(self._execute_sync, sql, params)

    def _execute_sync(self, sql: str, params: tuple[Any, ...]) -> QueryResult:
        with self._lock:
            return self._run_locked(sql, params)

    def _run_locked(self, sql: str, params: tuple[Any, ...]) -> QueryResult:
        started = time.perf_counter()
        before = self._conn.total_changes
        cursor = self._conn.execute(sql, params)
        rows = [dict(row) for row in cursor.fetchall()] if cursor.description else []
        changes = self._conn.total_changes - before
        return QueryResult(
            results=rows,
            meta={
                "duration": _elapsed_ms(started),
                "changes": changes,
                "last_row_id": cursor.lastrowid or 0,
                "rows_read": len(rows),
            },
        )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)
