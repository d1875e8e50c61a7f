"""Tabular data store used by the timetable core.

The core only needs three primitives (select, insert and delete with simple
filters) plus a way to group several statements into one transaction.
:class:`DataStore` provides them on top of a :mod:`sqlite3` connection.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import StoreError

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_OPERATORS = {"=", "!=", "<", "<=", ">", ">=", "in"}

Filter = Tuple[str, str, Any]
Filters = Union[Mapping[str, Any], Sequence[Filter], None]


def _check_identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _normalize_filters(filters: Filters) -> List[Filter]:
    if not filters:
        return []
    if isinstance(filters, Mapping):
        return [(column, "=", value) for column, value in filters.items()]
    return [tuple(item) for item in filters]


def _where_clause(filters: Filters) -> Tuple[str, List[Any]]:
    parts = []
    params: List[Any] = []
    for column, op, value in _normalize_filters(filters):
        _check_identifier(column)
        op = op.lower()
        if op not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {op!r}")
        if op == "in":
            values = list(value)
            if not values:
                # Nothing can match an empty IN list.
                parts.append("0")
                continue
            placeholders = ",".join("?" for _ in values)
            parts.append(f"{column} IN ({placeholders})")
            params.extend(values)
        elif value is None and op in ("=", "!="):
            parts.append(f"{column} IS {'NOT ' if op == '!=' else ''}NULL")
        else:
            parts.append(f"{column} {op} ?")
            params.append(value)
    if not parts:
        return "", params
    return " WHERE " + " AND ".join(parts), params


def _order_clause(order_by: Union[str, Sequence[str], None]) -> str:
    if not order_by:
        return ""
    if isinstance(order_by, str):
        order_by = [order_by]
    terms = []
    for term in order_by:
        descending = term.startswith("-")
        column = _check_identifier(term[1:] if descending else term)
        terms.append(f"{column} DESC" if descending else column)
    return " ORDER BY " + ", ".join(terms)


class DataStore:
    """Thin select/insert/delete layer over a SQLite connection.

    Outside :meth:`transaction` each write is committed immediately.  Inside
    it, writes are held until the outermost block exits and are rolled back
    if it raises.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row
        self._depth = 0

    @classmethod
    def open(cls, path: str, timeout: float = 5.0) -> "DataStore":
        try:
            conn = sqlite3.connect(path, timeout=timeout)
        except sqlite3.Error as exc:
            raise StoreError(str(exc), step="open database") from exc
        return cls(conn)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "DataStore":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _execute(self, sql: str, params: Sequence[Any], step: str) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as exc:
            logger.exception("Store step failed: %s", step)
            raise StoreError(str(exc), step=step) from exc

    def _commit_if_idle(self, step: str) -> None:
        if self._depth:
            return
        try:
            self.conn.commit()
        except sqlite3.Error as exc:
            logger.exception("Commit failed after %s", step)
            raise StoreError(str(exc), step=step) from exc

    def select(
        self,
        table: str,
        filters: Filters = None,
        order_by: Union[str, Sequence[str], None] = None,
        columns: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return matching rows as plain dictionaries.

        ``order_by`` takes column names; prefix one with ``-`` to sort it
        descending.
        """
        _check_identifier(table)
        cols = ", ".join(_check_identifier(c) for c in columns) if columns else "*"
        where, params = _where_clause(filters)
        sql = f"SELECT {cols} FROM {table}{where}{_order_clause(order_by)}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        cursor = self._execute(sql, params, f"select {table}")
        return [dict(row) for row in cursor.fetchall()]

    def insert(self, table: str, rows: Iterable[Mapping[str, Any]]) -> int:
        """Insert ``rows`` and return how many were written.

        All rows must share the same columns.
        """
        _check_identifier(table)
        rows = list(rows)
        if not rows:
            return 0
        columns = [_check_identifier(c) for c in rows[0]]
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
        step = f"insert {table}"
        try:
            self.conn.executemany(sql, [tuple(row[c] for c in columns) for row in rows])
        except sqlite3.Error as exc:
            logger.exception("Store step failed: %s", step)
            raise StoreError(str(exc), step=step) from exc
        self._commit_if_idle(step)
        return len(rows)

    def delete(self, table: str, filters: Filters) -> int:
        """Delete matching rows and return the count.

        An empty filter is refused so a mistake cannot clear a whole table.
        """
        _check_identifier(table)
        where, params = _where_clause(filters)
        if not where:
            raise ValueError("delete() requires at least one filter")
        step = f"delete {table}"
        cursor = self._execute(f"DELETE FROM {table}{where}", params, step)
        self._commit_if_idle(step)
        return cursor.rowcount

    @contextmanager
    def transaction(self) -> Iterator["DataStore"]:
        """Run the enclosed statements atomically.

        The outer block takes SQLite's write lock up front (``BEGIN
        IMMEDIATE``) so two writers cannot interleave their delete and insert
        steps.  Nested blocks use savepoints.
        """
        if self._depth:
            name = f"sp_{self._depth}"
            self._execute(f"SAVEPOINT {name}", (), "begin savepoint")
            self._depth += 1
            try:
                yield self
            except BaseException:
                self._depth -= 1
                self._execute(f"ROLLBACK TO {name}", (), "roll back savepoint")
                self._execute(f"RELEASE {name}", (), "release savepoint")
                raise
            self._depth -= 1
            self._execute(f"RELEASE {name}", (), "release savepoint")
            return

        if self.conn.in_transaction:
            # Flush statements issued through the raw connection.
            self.conn.commit()
        self._execute("BEGIN IMMEDIATE", (), "begin transaction")
        self._depth = 1
        try:
            yield self
        except BaseException:
            self._depth = 0
            self.conn.rollback()
            raise
        self._depth = 0
        try:
            self.conn.commit()
        except sqlite3.Error as exc:
            logger.exception("Commit failed")
            self.conn.rollback()
            raise StoreError(str(exc), step="commit transaction") from exc
