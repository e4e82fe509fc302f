"""Storage adapter contract.

Manifesto:
    The query core never talks to a database. It hands a
    :class:`~spine_orm.query.StageThreeQuery` to an adapter and checks what
    comes back. Adapters are third-party plugins, so the contract below is
    what the dispatcher *verifies*, not what it assumes.

Architecture::

    Adapter (Protocol)
        create(datastore, query)       -> record | None
        create_each(datastore, query)  -> list[record] | None
        update(datastore, query)       -> list[record] | None
        destroy(datastore, query)      -> list[record] | None
        find(datastore, query)         -> list[record]
        count(datastore, query)        -> int
        sum(datastore, query)          -> number
        avg(datastore, query)          -> number

    Mutations return records only when ``query.meta.fetch`` is set.
    Methods may be plain functions or coroutines. Failures are *raised*;
    a uniqueness violation carries ``footprint = {"identity": "notUnique",
    "keys": [<column>, ...]}``.

An adapter does not have to implement every method; calling one it lacks
is a configuration error (:class:`~spine_orm.errors.UnsupportedOperationError`).

Tags:
    spine-orm, adapter, protocol, plugin-boundary

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from spine_orm.query import StageThreeQuery

RawRecord = Mapping[str, Any]


@runtime_checkable
class Adapter(Protocol):
    """Minimal adapter: reads only. Every other method is optional."""

    async def find(self, datastore: str, query: StageThreeQuery) -> Sequence[RawRecord]: ...


@runtime_checkable
class MutatingAdapter(Adapter, Protocol):
    """Adapter that also supports the mutation methods."""

    async def create(self, datastore: str, query: StageThreeQuery) -> RawRecord | None: ...

    async def create_each(
        self, datastore: str, query: StageThreeQuery
    ) -> Sequence[RawRecord] | None: ...

    async def update(
        self, datastore: str, query: StageThreeQuery
    ) -> Sequence[RawRecord] | None: ...

    async def destroy(
        self, datastore: str, query: StageThreeQuery
    ) -> Sequence[RawRecord] | None: ...


@runtime_checkable
class AggregatingAdapter(Adapter, Protocol):
    """Adapter that also supports the aggregate methods."""

    async def count(self, datastore: str, query: StageThreeQuery) -> int: ...

    async def sum(self, datastore: str, query: StageThreeQuery) -> float: ...

    async def avg(self, datastore: str, query: StageThreeQuery) -> float: ...


__all__ = ["RawRecord", "Adapter", "MutatingAdapter", "AggregatingAdapter"]
