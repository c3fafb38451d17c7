"""Build parameterised SQL statements with ``$n`` placeholders.

A statement is prepared from a template that may contain the markers
``$Where$``, ``*Where*``, ``$Values$``, ``$ValuesKeys$``, ``$ValuesSerial$``,
``$Set$``, ``*Set*``, ``$SetKeys$``, ``$SetSerial$`` and ``$Excluded$``.
Plain ``?`` marks and ``$1``-style references are filled from the arguments
given to :meth:`SQLTable.args`.  Another :class:`SQLTable` may be used as a
value; it is rendered as a parenthesised sub-query whose placeholders are
numbered on from the enclosing statement.

Example::

    prepare('select "A1" from "A" $Where$ order by "ID" limit 10').and_("A1=?", value)
    prepare('insert into "A"$Values$').values("A1", value)
    prepare('update "A" $Set$ $Where$').set("A1", value).and_("A1=?", value)
    prepare('delete from "A" $Where$').and_("A1=?", value)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Iterator

__all__ = ["SQLTable", "prepare"]


@dataclass(frozen=True)
class _Condition:
    symbol: str
    key: str
    value: Any


def _pairs(items: tuple[Any, ...]) -> Iterator[tuple[int, Any, Any]]:
    """Yield (position, key, value) for an even-length argument list."""
    if len(items) % 2 != 0:
        return
    for position, (key, value) in enumerate(zip(items[::2], items[1::2])):
        yield position * 2, key, value


class SQLTable:
    """A SQL statement under construction."""

    def __init__(self, source: str = "") -> None:
        number = 1
        while f"${number}" in source:
            source = source.replace(f"${number}", f"@{number}")
            number += 1
        self._source = source
        self._result = ""
        self._where: list[_Condition] = []
        self._excluded: list[str] = []
        self._count = 0
        self._args: list[Any] = []
        self._ext_args: list[Any] = []
        self._column_mark = ""
        self._values: dict[str, Any] = {}
        self._sets: dict[str, Any] = {}
        self._types: dict[str, str] = {}
        self._funcs: dict[str, str] = {}

    # -- placeholders -------------------------------------------------------

    def _progress(self, value: Any) -> str:
        if isinstance(value, SQLTable):
            statement = value._clone()
            statement._count = self._count
            text = "(" + statement.sql() + ")"
            self._count = statement._count
            self._args.extend(statement._args)
            return text
        self._count += 1
        self._args.append(value)
        return f"${self._count}"

    def _add_column_mark(self, column: str) -> str:
        mark = self._column_mark or '"'
        if any("A" <= char <= "Z" for char in column):
            return mark + column + mark
        return column

    def _decorate(self, key: str, placeholder: str) -> str:
        if key in self._types:
            placeholder += "::" + self._types[key]
        if key in self._funcs:
            placeholder = self._funcs[key].replace("?", placeholder)
        return placeholder

    def _more(self, setter: Callable[[str, Any], "SQLTable"], items: tuple[Any, ...]) -> "SQLTable":
        if len(items) % 2 != 0:
            return self
        for column, value in zip(items[::2], items[1::2]):
            if not isinstance(column, str):
                return self
            setter(column, value)
        return self

    def _mapping(self, target: dict[str, str], label: str, items: tuple[Any, ...]) -> "SQLTable":
        for position, key, value in _pairs(items):
            if not isinstance(key, str):
                raise TypeError(f"SQLTable.{label} in {position}: key {key!r} is not a string")
            if not isinstance(value, str):
                raise TypeError(f"SQLTable.{label} in {position}: value {value!r} is not a string")
            target[self._add_column_mark(key)] = value
        return self

    # -- configuration ------------------------------------------------------

    def to_types(self, *args: Any) -> "SQLTable":
        """Cast columns: pairs of column name and SQL type (``col::type``)."""
        return self._mapping(self._types, "to_types", args)

    def to_funcs(self, *args: Any) -> "SQLTable":
        """Wrap columns in a function: pairs of column name and template with ``?``."""
        return self._mapping(self._funcs, "to_funcs", args)

    def column_mark(self, mark: str) -> "SQLTable":
        """Set the quote used around column names with capitals."""
        self._column_mark = mark
        return self

    # -- values -------------------------------------------------------------

    def value(self, column: str, value: Any) -> "SQLTable":
        """Add or replace a column for ``$Values$``."""
        self._values[self._add_column_mark(column)] = value
        return self

    def values(self, *args: Any) -> "SQLTable":
        """Add column/value pairs for ``$Values$``."""
        return self._more(self.value, args)

    def value_values(self, *args: Any) -> list[Any]:
        """Return the queued ``$Values$`` values followed by *args*."""
        return [*self._values.values(), *args]

    def _apply_values(self, source: str) -> str:
        rendered = [self._decorate(key, self._progress(value)) for key, value in self._values.items()]
        if self._values:
            keys = ",".join(self._values)
            serial = ",".join(rendered)
            source = source.replace("$Values$", f"({keys}) values({serial})", 1)
            source = source.replace("$ValuesKeys$", keys, 1)
            source = source.replace("$ValuesSerial$", serial, 1)
        return source

    # -- where --------------------------------------------------------------

    def and_(self, column: str, value: Any) -> "SQLTable":
        """Add an ``and`` condition for ``$Where$``."""
        return self.where("and", column, value)

    def ands(self, *args: Any) -> "SQLTable":
        """Add condition/value pairs joined with ``and``."""
        return self._more(self.and_, args)

    def or_(self, column: str, value: Any) -> "SQLTable":
        """Add an ``or`` condition for ``$Where$``."""
        return self.where("or", column, value)

    def ors(self, *args: Any) -> "SQLTable":
        """Add condition/value pairs joined with ``or``."""
        return self._more(self.or_, args)

    def where(self, symbol: str, column: str, value: Any) -> "SQLTable":
        """Add a condition joined by *symbol*; its first ``?`` takes *value*."""
        self._where.append(_Condition(symbol, column, value))
        return self

    def _apply_where(self, source: str) -> str:
        optional = "*Where*" in source
        parts: list[str] = []
        for condition in self._where:
            if parts or optional:
                parts.append(condition.symbol)
            parts.append(condition.key.replace("?", self._progress(condition.value), 1))
        clause = " ".join(parts)
        source = source.replace("*Where*", clause, 1)
        if parts:
            clause = "where " + clause
        return source.replace("$Where$", clause, 1)

    # -- set ----------------------------------------------------------------

    def set(self, column: str, value: Any) -> "SQLTable":
        """Add or replace a column for ``$Set$``."""
        self._sets[self._add_column_mark(column)] = value
        return self

    def sets(self, *args: Any) -> "SQLTable":
        """Add column/value pairs for ``$Set$``."""
        return self._more(self.set, args)

    def set_values(self, *args: Any) -> list[Any]:
        """Return the queued ``$Set$`` values followed by *args*."""
        return [*self._sets.values(), *args]

    def _apply_set(self, source: str) -> str:
        assignments: list[str] = []
        serial: list[str] = []
        for key, value in self._sets.items():
            placeholder = self._decorate(key, self._progress(value))
            assignments.append(f"{key}={placeholder}")
            serial.append(placeholder)
        clause = ",".join(assignments)
        source = source.replace("*Set*", clause, 1)
        if assignments:
            clause = "set " + clause
        source = source.replace("$Set$", clause, 1)
        source = source.replace("$SetKeys$", ",".join(self._sets), 1)
        return source.replace("$SetSerial$", ",".join(serial), 1)

    # -- excluded -----------------------------------------------------------

    def excluded(self, *args: str) -> "SQLTable":
        """Name columns to update from ``excluded`` on conflict (``$Excluded$``)."""
        self._excluded.extend(args)
        return self

    def _apply_excluded(self, source: str) -> str:
        assignments = []
        for column in self._excluded:
            column = self._add_column_mark(column)
            if column in self._values:
                assignments.append(f"{column}=excluded.{column}")
        if assignments:
            source = source.replace("$Excluded$", ",".join(assignments), 1)
        return source

    # -- assembly -----------------------------------------------------------

    def _assemble_statement(self, *args: Any) -> str:
        if self._result:
            return self._result
        source = self._source
        for index, arg in enumerate([*self._ext_args, *args], start=1):
            dollar = self._progress(arg)
            essential = f"@{index}"
            if essential in source:
                source = source.replace(essential, dollar)
            else:
                source = source.replace("?", dollar, 1)
        source = self._apply_where(source)
        source = self._apply_values(source)
        source = self._apply_set(source)
        source = self._apply_excluded(source)
        self._result = source
        return source

    def sql(self) -> str:
        """Return the assembled statement; call :meth:`args` first to supply arguments."""
        return self._assemble_statement()

    def _clone(self) -> "SQLTable":
        clone = copy.copy(self)
        clone._where = list(self._where)
        clone._excluded = list(self._excluded)
        clone._ext_args = list(self._ext_args)
        clone._values = dict(self._values)
        clone._sets = dict(self._sets)
        clone._types = dict(self._types)
        clone._funcs = dict(self._funcs)
        clone._result = ""
        clone._count = 0
        clone._args = []
        return clone

    def copy(self) -> "SQLTable":
        """Return an unassembled copy of this statement."""
        return self._clone()

    def ext_args(self, *args: Any) -> "SQLTable":
        """Return a copy carrying extra leading arguments for ``?`` marks."""
        clone = self._clone()
        clone._ext_args = [*self._ext_args, *args]
        return clone

    def args(self, *args: Any) -> list[Any]:
        """Assemble with *args* filling ``?`` marks and return every argument in order."""
        self._assemble_statement(*args)
        return list(self._args)


def prepare(source: str) -> SQLTable:
    """Start a statement from a template."""
    return SQLTable(source)