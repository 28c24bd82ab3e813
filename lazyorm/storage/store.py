"""Thin SQLite store used by the schema manager, writer and reader."""
from __future__ import annotations

import contextlib
import sqlite3
from pathlib import Path
from typing import Iterator, List, Sequence, Union

import structlog

from lazyorm.errors import StoreError
from lazyorm.observability.metrics import MetricsRegistry
from lazyorm.observability.tracing import span

LOGGER = structlog.get_logger(__name__)


class SQLiteStore:
    """Single connection wrapper translating ``sqlite3`` failures into StoreError."""

    def __init__(self, connection: sqlite3.Connection, *, metrics: MetricsRegistry | None = None) -> None:
        connection.row_factory = sqlite3.Row
        self._connection = connection
        self.metrics = metrics or MetricsRegistry()

    @classmethod
    def open(cls, path: Union[str, Path], *, metrics: MetricsRegistry | None = None) -> "SQLiteStore":
        """Connect to the database file at ``path`` (``":memory:"`` allowed)."""
        if str(path) != ":memory:":
            Path(path).parent.mkdir(parents=True, exist_ok=True)
        try:
            connection = sqlite3.connect(str(path))
        except sqlite3.Error as exc:
            raise StoreError(f"Cannot open database {path}: {exc}") from exc
        LOGGER.debug("store_opened", path=str(path))
        return cls(connection, metrics=metrics)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def execute(self, sql: str) -> None:
        """Run a parameterless statement and commit it."""
        with self.transaction():
            self._run(sql, ())

    def execute_update(self, sql: str, params: Sequence[object]) -> int:
        """Run a parameterized write and return the affected row count."""
        cursor = self._run(sql, params)
        return cursor.rowcount

    def query(self, sql: str, params: Sequence[object]) -> List[sqlite3.Row]:
        """Run a parameterized SELECT and return every row."""
        cursor = self._run(sql, params)
        try:
            return cursor.fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc

    @contextlib.contextmanager
    def transaction(self) -> Iterator["SQLiteStore"]:
        """Commit on success, roll back and re-raise on any failure."""
        try:
            yield self
        except BaseException:
            try:
                self._connection.rollback()
            except sqlite3.Error as exc:
                LOGGER.warning("rollback_failed", error=str(exc))
            raise
        try:
            self._connection.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Commit failed: {exc}") from exc

    def close(self) -> None:
        self._connection.close()

    def _run(self, sql: str, params: Sequence[object]) -> sqlite3.Cursor:
        self.metrics.incr("statements_executed")
        with span(name="statement"):
            try:
                return self._connection.execute(sql, tuple(params))
            except sqlite3.Error as exc:
                LOGGER.debug("statement_failed", sql=sql, error=str(exc))
                raise StoreError(str(exc)) from exc
