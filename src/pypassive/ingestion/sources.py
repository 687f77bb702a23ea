"""Record source interfaces and the sqlite-backed implementation.

Endpoint-style modules depend on the protocols only, which makes it easy
to pass test doubles while keeping :class:`SqliteRecordSource` concrete.
"""

from __future__ import annotations

import logging
import re
import sqlite3
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Protocol

from pypassive.exceptions import SourceQueryError

_logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Row = Mapping[str, Any]


class RecordSource(Protocol):
    """Strictly ordered, page-bounded access to an append-only log.

    ``lower_bound`` is exclusive; ``None`` means "from the beginning".
    A page shorter than ``limit`` signals exhaustion.
    """

    name: str

    def query(self, ordering_field: str, lower_bound: Any, limit: int) -> Sequence[Row]: ...


class CountingSource(Protocol):
    """Bounded full-scan counting, e.g. unread messages."""

    name: str

    def count(self, **criteria: Any) -> int: ...


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"invalid SQL identifier: {name!r}")
    return name


class SqliteRecordSource:
    """Record source over one table of a sqlite database.

    Parameters
    ----------
    connect
        Factory returning a fresh connection. A connection is opened per
        query so the source can be used from worker threads.
    table
        Table name.
    columns
        Columns returned for every row; also the only columns accepted as
        ordering field or count criterion.
    name
        Label used in logs and errors. Defaults to the table name.
    """

    def __init__(
        self,
        connect: Callable[[], sqlite3.Connection],
        table: str,
        columns: Iterable[str],
        *,
        name: str | None = None,
    ) -> None:
        self._connect = connect
        self._table = _check_identifier(table)
        self._columns: tuple[str, ...] = tuple(_check_identifier(c) for c in columns)
        if not self._columns:
            raise ValueError("columns must be non-empty")
        self.name = name or table
        self._lock = threading.Lock()

    @classmethod
    def from_path(cls, path: str, table: str, columns: Iterable[str], *, name: str | None = None) -> SqliteRecordSource:
        """Open read-only connections to the database file at *path*."""

        def _connect() -> sqlite3.Connection:
            return sqlite3.connect(f"file:{path}?mode=ro", uri=True, check_same_thread=False)

        return cls(_connect, table, columns, name=name)

    def _require_column(self, column: str) -> str:
        if column not in self._columns:
            raise SourceQueryError(f"Unknown column {column!r} for {self.name}", source=self.name)
        return column

    def _execute(self, sql: str, params: Sequence[Any]) -> list[sqlite3.Row]:
        _logger.debug("%s: %s %s", self.name, sql, params)
        try:
            with self._lock:
                conn = self._connect()
                try:
                    conn.row_factory = sqlite3.Row
                    return list(conn.execute(sql, params).fetchall())
                finally:
                    conn.close()
        except sqlite3.Error as exc:
            raise SourceQueryError(f"Query on {self.name} failed: {exc}", source=self.name) from exc

    def query(self, ordering_field: str, lower_bound: Any, limit: int) -> list[dict[str, Any]]:
        field = self._require_column(ordering_field)
        if limit <= 0:
            raise ValueError("limit must be positive")
        cols = ", ".join(self._columns)
        if lower_bound is None:
            sql = f"SELECT {cols} FROM {self._table} WHERE {field} IS NOT NULL ORDER BY {field} ASC LIMIT ?"
            params: tuple[Any, ...] = (limit,)
        else:
            sql = f"SELECT {cols} FROM {self._table} WHERE {field} > ? ORDER BY {field} ASC LIMIT ?"
            params = (lower_bound, limit)
        return [dict(row) for row in self._execute(sql, params)]

    def count(self, **criteria: Any) -> int:
        where = " AND ".join(f"{self._require_column(k)} = ?" for k in criteria)
        sql = f"SELECT COUNT(*) AS n FROM {self._table}"
        if where:
            sql = f"{sql} WHERE {where}"
        rows = self._execute(sql, tuple(criteria.values()))
        return int(rows[0]["n"]) if rows else 0
