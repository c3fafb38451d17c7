"""A thin helper over DB-API 2.0 connections.

It commits or rolls back automatically, reports empty results as
:class:`NoRowsError` and returns query results as lists of dicts.

Any DB-API connection factory works; ``sqlite3.connect`` is the usual choice::

    db = Database().open(sqlite3.connect, ":memory:")
    db.exec(None, "insert into t(a) values(?)", 1)
    rows = db.query(None, "select a from t")
"""

from __future__ import annotations

import itertools
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional

__all__ = [
    "ConnectionDoneError",
    "Database",
    "NoRowsError",
    "Row",
    "column_array",
    "column_array_nil",
    "column_filter",
    "key_to_lower",
]

_logger = logging.getLogger(__name__)
_debug_counter = itertools.count()


class NoRowsError(LookupError):
    """The statement matched or returned no rows."""

    def __init__(self, message: str = "sql: no rows in result set") -> None:
        super().__init__(message)


class ConnectionDoneError(RuntimeError):
    """The database has no open connection."""

    def __init__(self, message: str = "sql: connection is already closed") -> None:
        super().__init__(message)


class _Transaction:
    """A transaction on the database connection."""

    def __init__(self, connection: Any) -> None:
        self._connection = connection

    def execute(self, sql: str, params: tuple[Any, ...]) -> Any:
        cursor = self._connection.cursor()
        cursor.execute(sql, params)
        return cursor

    def commit(self) -> None:
        self._connection.commit()

    def rollback(self) -> None:
        self._connection.rollback()


class Row:
    """A single pending result row; :meth:`scan` fetches it."""

    def __init__(
        self,
        *,
        cursor: Any = None,
        tx: Optional[_Transaction] = None,
        err: Optional[BaseException] = None,
    ) -> None:
        self._cursor = cursor
        self._tx = tx
        self._err = err

    def scan(self) -> tuple[Any, ...]:
        """Return the row, committing the statement's own transaction.

        Raises :class:`NoRowsError` when there is no row; in that case the
        statement's own transaction is rolled back.
        """
        if self._err is not None:
            raise self._err
        row = self._cursor.fetchone()
        if self._tx is None:
            if row is None:
                raise NoRowsError()
            return tuple(row)
        if row is None:
            self._tx.rollback()
            raise NoRowsError()
        self._tx.commit()
        return tuple(row)

    def err(self) -> Optional[BaseException]:
        """Return the error recorded before scanning, if any."""
        return self._err


def _debug_format(sql: str) -> str:
    sql = sql.replace("\n", " ")
    sql = sql.replace("\t", "")
    return sql.replace("  ", " ")


def _is_select(sql: str) -> bool:
    return sql.lstrip(" \t\r\n").lower().startswith("select")


@dataclass
class Database:
    """A database connection with automatic transactions.

    ``type_to(description)`` may return a converter applied to each non-null
    value of that column; ``data_to(name, value)`` may replace each value.
    ``debug_result(tx, sql, *args)`` may return a canned result that is used
    instead of touching the database.
    """

    format_column_name: bool = False
    type_to: Optional[Callable[[Any], Optional[Callable[[Any], Any]]]] = None
    data_to: Optional[Callable[[str, Any], Any]] = None
    error_log: Optional[logging.Logger] = None
    debug_print: bool = False
    debug_result: Optional[Callable[..., Any]] = None
    _connection: Any = field(default=None, init=False, repr=False)

    # -- connection ---------------------------------------------------------

    def open(self, connect: Callable[..., Any], *args: Any, **kwargs: Any) -> "Database":
        """Connect with ``connect(*args, **kwargs)`` unless already connected."""
        if self._connection is None:
            self._connection = connect(*args, **kwargs)
        return self

    def close(self) -> None:
        """Close the connection."""
        if self._connection is None:
            raise ConnectionDoneError()
        connection, self._connection = self._connection, None
        connection.close()

    def __enter__(self) -> "Database":
        return self

    def __exit__(self, *exc: Any) -> None:
        if self._connection is not None:
            self.close()

    def _require(self) -> Any:
        if self._connection is None:
            raise ConnectionDoneError()
        return self._connection

    # -- transactions -------------------------------------------------------

    def tx_begin(self) -> tuple[_Transaction, Callable[[Optional[BaseException]], None]]:
        """Start a transaction; return it with a function that finishes it."""
        tx = _Transaction(self._require())

        def commit(error: Optional[BaseException] = None) -> None:
            self.tx_commit(tx, error)

        return tx, commit

    def tx_commit(self, tx: _Transaction, error: Optional[BaseException]) -> None:
        """Roll back when *error* is set, else commit; failures are logged."""
        try:
            if error is not None:
                tx.rollback()
            else:
                tx.commit()
        except Exception as exc:  # noqa: BLE001 - reported, not raised
            self.logf("%s", exc)

    @contextmanager
    def transaction(self) -> Iterator[_Transaction]:
        """Run a block in a transaction, rolling back if it raises."""
        tx, commit = self.tx_begin()
        try:
            yield tx
        except BaseException as exc:
            commit(exc)
            raise
        commit(None)

    # -- logging ------------------------------------------------------------

    def logf(self, fmt: str, *args: Any) -> None:
        """Log a printf-style message to ``error_log`` or the module logger."""
        message = fmt % args if args else fmt
        (self.error_log or _logger).info(message)

    def _debug_print(self, sql: str, args: tuple[Any, ...]) -> None:
        if not self.debug_print:
            return
        number = next(_debug_counter)
        rendered = ",".join(f"'{arg}'" for arg in args)
        self.logf(
            "\nprepare test%d as %s;\nexecute test%d(%s);\ndeallocate test%d;\n",
            number,
            _debug_format(sql),
            number,
            rendered,
            number,
        )

    def _debug(self, tx: Any, sql: str, args: tuple[Any, ...]) -> Any:
        self._debug_print(sql, args)
        if self.debug_result is None:
            return None
        return self.debug_result(tx, _debug_format(sql), *args)

    # -- statements ---------------------------------------------------------

    def exec(self, tx: Optional[_Transaction], sql: str, *args: Any) -> Any:
        """Execute a write; return the cursor.

        Raises :class:`NoRowsError` when no row was affected.  Without *tx*
        the statement runs in its own transaction.
        """
        connection = self._require()
        canned = self._debug(tx, sql, args)
        if canned is not None and hasattr(canned, "rowcount"):
            return canned

        own = tx is None
        if own:
            tx = _Transaction(connection)
        try:
            cursor = tx.execute(sql, args)
            if cursor.rowcount == 0:
                raise NoRowsError()
        except BaseException as exc:
            if own:
                self.tx_commit(tx, exc)
            raise
        if own:
            self.tx_commit(tx, None)
        return cursor

    def query_row(self, tx: Optional[_Transaction], sql: str, *args: Any) -> Row:
        """Run a statement returning one row; read it with :meth:`Row.scan`."""
        if self._connection is None:
            return Row(err=ConnectionDoneError())
        connection = self._connection
        canned = self._debug(tx, sql, args)
        if canned is not None and hasattr(canned, "scan"):
            return canned

        if _is_select(sql):
            try:
                return Row(cursor=connection.execute(sql, args))
            except Exception as exc:
                return Row(err=exc)

        own_tx = None
        if tx is None:
            own_tx = tx = _Transaction(connection)
        try:
            cursor = tx.execute(sql, args)
        except Exception as exc:
            if own_tx is not None:
                self.tx_commit(own_tx, exc)
            return Row(err=exc)
        return Row(cursor=cursor, tx=own_tx)

    def query(
        self,
        tx: Optional[_Transaction],
        sql: str,
        *args: Any,
        type_to: Optional[Callable[[Any], Optional[Callable[[Any], Any]]]] = None,
        data_to: Optional[Callable[[str, Any], Any]] = None,
    ) -> list[dict[str, Any]]:
        """Run a statement and return its rows as dicts.

        A ``select`` reads directly; a write without ``returning`` is passed
        to :meth:`exec` and returns an empty list; a write with ``returning``
        runs in a transaction.  Raises :class:`NoRowsError` if no rows come
        back.  *type_to* and *data_to* apply before the instance's own.
        """
        connection = self._require()
        canned = self._debug(tx, sql, args)
        if isinstance(canned, list):
            return canned

        lowered = sql.lstrip(" \t\r\n").lower()
        if lowered.startswith("select"):
            cursor = connection.execute(sql, args)
            return self._collect(cursor, type_to, data_to)
        if "returning" not in lowered:
            self.exec(tx, sql, *args)
            return []

        own = tx is None
        if own:
            tx = _Transaction(connection)
        try:
            cursor = tx.execute(sql, args)
            data = self._collect(cursor, type_to, data_to)
        except BaseException as exc:
            if own:
                self.tx_commit(tx, exc)
            raise
        if own:
            self.tx_commit(tx, None)
        return data

    def _collect(
        self,
        cursor: Any,
        type_to: Optional[Callable[[Any], Optional[Callable[[Any], Any]]]],
        data_to: Optional[Callable[[str, Any], Any]],
    ) -> list[dict[str, Any]]:
        description = cursor.description or ()
        columns = [entry[0] for entry in description]
        if self.format_column_name:
            columns = [key_to_lower(column) for column in columns]

        def resolve(entry: Any) -> Optional[Callable[[Any], Any]]:
            converter = type_to(entry) if type_to is not None else None
            if converter is None and self.type_to is not None:
                return self.type_to(entry)
            return converter

        converters = [resolve(entry) for entry in description]

        def transform(name: str, value: Any) -> Any:
            if data_to is not None:
                value = data_to(name, value)
            if self.data_to is not None:
                return self.data_to(name, value)
            return value

        data = []
        for row in cursor.fetchall():
            record = {}
            for name, converter, value in zip(columns, converters, row):
                if converter is not None and value is not None:
                    value = converter(value)
                record[name] = transform(name, value)
            data.append(record)
        if not data:
            raise NoRowsError()
        return data

    def has(self, sql: str, *args: Any) -> bool:
        """Return True if the query yields a row, else raise :class:`NoRowsError`."""
        connection = self._require()
        canned = self._debug(None, sql, args)
        if isinstance(canned, BaseException):
            raise canned
        cursor = connection.execute(sql, args)
        try:
            if cursor.fetchone() is None:
                raise NoRowsError()
        finally:
            cursor.close()
        return True


# -- helpers on result lists ------------------------------------------------


def column_filter(
    rows: list[dict[str, Any]], predicate: Callable[[str], bool]
) -> list[dict[str, Any]]:
    """Return copies of *rows* without the columns for which *predicate* is true."""
    return [{name: value for name, value in row.items() if not predicate(name)} for row in rows]


def column_array(rows: list[dict[str, Any]], key: str) -> list[Any]:
    """Return the non-null values of column *key*."""
    return [row[key] for row in rows if row.get(key) is not None]


def column_array_nil(rows: list[dict[str, Any]], key: str) -> list[Any]:
    """Return the values of column *key*, nulls included."""
    return [row[key] for row in rows if key in row]


def key_to_lower(key: str) -> str:
    """Lower the leading capitals of a column name (``AbcDf`` -> ``abcDf``).

    Names ending in ``ID`` are lowered completely.
    """
    if key.endswith("ID"):
        return key.lower()
    chars = list(key)
    length = len(chars)
    for index, char in enumerate(chars):
        if char == "_":
            continue
        if not "A" <= char <= "Z":
            break
        if index != 0 and index + 1 != length and "a" <= chars[index + 1] <= "z":
            break
        chars[index] = char.lower()
    return "".join(chars)