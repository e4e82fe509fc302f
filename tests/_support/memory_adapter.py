"""
In-memory adapters for spine-orm tests.

``MemoryAdapter`` is a small reference implementation of the adapter
contract: tables are lists of column dictionaries, where clauses are
evaluated in Python, and a configurable set of unique columns produces
``notUnique`` footprints like a real driver would.

``ScriptedAdapter`` answers every call with a pre-configured value (or
raises a pre-configured error), so tests can make an adapter misbehave
on purpose. Its methods are plain functions, which also covers the
sync-adapter path of the dispatcher.

Both record every call in ``calls`` as ``(method, datastore, query)``.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping
from typing import Any

from spine_orm.query import StageThreeQuery


class AdapterError(Exception):
    """Error raised by the test adapters (optionally with a footprint)."""

    def __init__(self, message: str, *, footprint: dict[str, Any] | None = None):
        super().__init__(message)
        if footprint is not None:
            self.footprint = footprint


# =============================================================================
# Where-clause evaluation
# =============================================================================


def _like_to_regex(pattern: str) -> re.Pattern[str]:
    parts = (re.escape(chunk) for chunk in pattern.split("%"))
    return re.compile("^" + ".*".join(parts) + "$", re.DOTALL)


def _compare(value: Any, modifier: str, operand: Any) -> bool:
    if modifier == "in":
        return value in operand
    if modifier == "nin":
        return value not in operand
    if modifier == "!=":
        return value != operand
    if value is None:
        return False
    if modifier == "<":
        return value < operand
    if modifier == "<=":
        return value <= operand
    if modifier == ">":
        return value > operand
    if modifier == ">=":
        return value >= operand
    if not isinstance(value, str):
        return False
    if modifier == "like":
        return bool(_like_to_regex(operand).match(value))
    if modifier == "contains":
        return operand in value
    if modifier == "startsWith":
        return value.startswith(operand)
    if modifier == "endsWith":
        return value.endswith(operand)
    raise AdapterError(f"Unsupported modifier: {modifier}")


def matches(record: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
    """True if *record* satisfies the physical where clause *where*."""
    for key, constraint in where.items():
        if key == "and":
            if not all(matches(record, clause) for clause in constraint):
                return False
        elif key == "or":
            if not any(matches(record, clause) for clause in constraint):
                return False
        elif isinstance(constraint, Mapping):
            value = record.get(key)
            if not all(_compare(value, mod, operand) for mod, operand in constraint.items()):
                return False
        elif record.get(key) != constraint:
            return False
    return True


def _sorted(records: list[dict[str, Any]], sort: tuple[tuple[str, str], ...]) -> list[dict[str, Any]]:
    result = list(records)
    for column, direction in reversed(sort):
        result.sort(
            key=lambda r: (r.get(column) is None, r.get(column)),
            reverse=direction == "DESC",
        )
    return result


def _project(record: dict[str, Any], query: StageThreeQuery) -> dict[str, Any]:
    criteria = query.criteria
    if criteria is None:
        return dict(record)
    if criteria.select != ("*",):
        return {column: record.get(column) for column in criteria.select}
    return {column: value for column, value in record.items() if column not in criteria.omit}


# =============================================================================
# Reference adapter
# =============================================================================


class MemoryAdapter:
    """Async in-memory adapter.

    Attributes:
        tables: Table name -> list of stored records (column dictionaries).
        calls: Every call as ``(method, datastore, query)``.

    Example:
        adapter = MemoryAdapter(unique={"users": ("email_address",)})
        adapter.seed("users", [{"id": 1, "email_address": "a@x.io"}])
    """

    def __init__(
        self,
        *,
        unique: Mapping[str, tuple[str, ...]] | None = None,
        primary_keys: Mapping[str, str] | None = None,
    ):
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str, StageThreeQuery]] = []
        self._unique = dict(unique or {})
        self._primary_keys = dict(primary_keys or {})
        self._next_id: dict[str, int] = {}

    # -- helpers -------------------------------------------------------------

    def seed(self, table: str, records: list[dict[str, Any]]) -> None:
        for record in records:
            self._insert(table, dict(record))

    def calls_to(self, method: str) -> list[StageThreeQuery]:
        return [query for name, _, query in self.calls if name == method]

    def _pk(self, table: str) -> str:
        return self._primary_keys.get(table, "id")

    def _rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _check_unique(self, table: str, record: dict[str, Any], ignore: Any = None) -> None:
        for column in self._unique.get(table, ()):
            value = record.get(column)
            if value is None:
                continue
            for existing in self._rows(table):
                if existing is ignore:
                    continue
                if existing.get(column) == value:
                    raise AdapterError(
                        f"Duplicate value for {table}.{column}: {value!r}",
                        footprint={"identity": "notUnique", "keys": [column]},
                    )

    def _insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        pk = self._pk(table)
        if record.get(pk) is None:
            self._next_id[table] = self._next_id.get(table, 0) + 1
            record[pk] = self._next_id[table]
        elif isinstance(record[pk], int):
            self._next_id[table] = max(self._next_id.get(table, 0), record[pk])
        self._check_unique(table, record)
        self._rows(table).append(record)
        return record

    def _matching(self, query: StageThreeQuery) -> list[dict[str, Any]]:
        where = query.criteria.where if query.criteria is not None else {}
        return [record for record in self._rows(query.using) if matches(record, where)]

    # -- mutations -----------------------------------------------------------

    async def create(self, datastore: str, query: StageThreeQuery) -> dict[str, Any] | None:
        self.calls.append(("create", datastore, query))
        record = self._insert(query.using, dict(query.values_to_set))
        return copy.deepcopy(record) if query.meta.fetch else None

    async def create_each(
        self, datastore: str, query: StageThreeQuery
    ) -> list[dict[str, Any]] | None:
        self.calls.append(("create_each", datastore, query))
        created = [self._insert(query.using, dict(values)) for values in query.new_records]
        return copy.deepcopy(created) if query.meta.fetch else None

    async def update(self, datastore: str, query: StageThreeQuery) -> list[dict[str, Any]] | None:
        self.calls.append(("update", datastore, query))
        updated = self._matching(query)
        for record in updated:
            self._check_unique(query.using, {**record, **query.values_to_set}, ignore=record)
        for record in updated:
            record.update(query.values_to_set)
        return copy.deepcopy(updated) if query.meta.fetch else None

    async def destroy(self, datastore: str, query: StageThreeQuery) -> list[dict[str, Any]] | None:
        self.calls.append(("destroy", datastore, query))
        doomed = self._matching(query)
        self.tables[query.using] = [
            r for r in self._rows(query.using) if not any(r is d for d in doomed)
        ]
        return copy.deepcopy(doomed) if query.meta.fetch else None

    # -- reads ---------------------------------------------------------------

    async def find(self, datastore: str, query: StageThreeQuery) -> list[dict[str, Any]]:
        self.calls.append(("find", datastore, query))
        criteria = query.criteria
        records = _sorted(self._matching(query), criteria.sort)
        start = criteria.skip
        stop = None if criteria.limit is None else start + criteria.limit
        return [_project(copy.deepcopy(record), query) for record in records[start:stop]]

    async def count(self, datastore: str, query: StageThreeQuery) -> int:
        self.calls.append(("count", datastore, query))
        return len(self._matching(query))

    async def sum(self, datastore: str, query: StageThreeQuery) -> float:
        self.calls.append(("sum", datastore, query))
        values = [r.get(query.numeric_column) or 0 for r in self._matching(query)]
        return sum(values)

    async def avg(self, datastore: str, query: StageThreeQuery) -> float:
        self.calls.append(("avg", datastore, query))
        values = [r.get(query.numeric_column) or 0 for r in self._matching(query)]
        return sum(values) / len(values) if values else 0


# =============================================================================
# Scripted adapter
# =============================================================================


class ScriptedAdapter:
    """Sync adapter with canned answers.

    ``results`` maps a method name to the value to return (a callable is
    called with the query). ``errors`` maps a method name to an exception
    to raise. Methods listed in ``missing`` do not exist at all.

    Example:
        adapter = ScriptedAdapter(results={"update": [{"id": 1, "name": "a"}]})
    """

    METHODS = ("create", "create_each", "update", "destroy", "find", "count", "sum", "avg")

    def __init__(
        self,
        *,
        results: Mapping[str, Any] | None = None,
        errors: Mapping[str, BaseException] | None = None,
        missing: tuple[str, ...] = (),
    ):
        self.results = dict(results or {})
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, str, StageThreeQuery]] = []
        for name in self.METHODS:
            if name not in missing:
                setattr(self, name, self._method(name))

    def calls_to(self, method: str) -> list[StageThreeQuery]:
        return [query for name, _, query in self.calls if name == method]

    def _method(self, name: str):
        def answer(datastore: str, query: StageThreeQuery) -> Any:
            self.calls.append((name, datastore, query))
            if name in self.errors:
                raise self.errors[name]
            result = self.results.get(name)
            return result(query) if callable(result) else copy.deepcopy(result)

        answer.__name__ = name
        return answer


__all__ = ["AdapterError", "MemoryAdapter", "ScriptedAdapter", "matches"]
