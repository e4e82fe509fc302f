"""
Association loading for reads.

The stage-3 compiler turns every populate into a :class:`Join`. Joins are
resolved here, in the core, with one extra ``find`` per association
against the child model's own adapter, so populates work across
datastores and with adapters that have no native join support.

- singular (``model=``): parent foreign key column -> child primary key;
  the foreign key value in each record is replaced by the child record
  (or ``None`` when it does not resolve).
- plural (``collection=`` / ``via=``): parent primary key <- child ``via``
  column; each record gets the list of its children, with the populate's
  ``skip``/``limit`` applied per parent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from spine_orm.adapters import dispatch
from spine_orm.context import OperationContext
from spine_orm.query import Criteria, Join, QueryMeta, QueryMethod, StageThreeQuery, StageTwoQuery
from spine_orm.records import materialize
from spine_orm.schema import ModelDefinition


def with_join_columns(query: StageTwoQuery, definition: ModelDefinition) -> StageTwoQuery:
    """Make sure ``select``/``omit`` keep the foreign keys singular populates need."""
    criteria = query.criteria
    if not query.populates or criteria is None:
        return query
    needed = [
        alias for alias in query.populates if definition.attribute(alias).is_singular_association
    ]
    if not needed:
        return query
    if criteria.select != ("*",):
        select = criteria.select + tuple(a for a in needed if a not in criteria.select)
        return replace(query, criteria=replace(criteria, select=select))
    omit = tuple(name for name in criteria.omit if name not in needed)
    return replace(query, criteria=replace(criteria, omit=omit))


async def populate_records(
    ctx: OperationContext,
    query: StageTwoQuery,
    physical: StageThreeQuery,
    raw_records: Sequence[Mapping[str, Any]],
    records: list[dict[str, Any]],
) -> None:
    """Attach every populated association to *records* in place."""
    if not query.populates:
        return
    definition = ctx.model.definition
    joins = {join.alias: join for join in physical.joins}

    for alias, child_criteria in query.populates.items():
        join = joins.get(alias)
        if join is None:
            # Populate criteria that can match nothing.
            singular = definition.attribute(alias).is_singular_association
            for record in records:
                record[alias] = None if singular else []
            continue
        await _resolve_join(ctx, join, child_criteria, query.meta, raw_records, records)


async def _resolve_join(
    ctx: OperationContext,
    join: Join,
    child_criteria: Criteria,
    meta: QueryMeta,
    raw_records: Sequence[Mapping[str, Any]],
    records: list[dict[str, Any]],
) -> None:
    keys = list(
        dict.fromkeys(
            raw.get(join.parent_column)
            for raw in raw_records
            if raw.get(join.parent_column) is not None
        )
    )
    if not keys:
        for record in records:
            record[join.alias] = None if join.singular else []
        return

    child_ctx = ctx.for_model(join.child_identity)
    child_entry = child_ctx.model
    criteria = join.criteria

    where: dict[str, Any] = {join.child_column: {"in": keys}}
    if criteria.where:
        where = {"and": [where, dict(criteria.where)]}
    select = criteria.select
    added_column = select != ("*",) and join.child_column not in select
    if added_column:
        select = (*select, join.child_column)

    child_query = StageThreeQuery(
        method=QueryMethod.FIND,
        using=join.child_table,
        datastore=child_entry.datastore.name,
        meta=meta,
        criteria=Criteria(
            where=where,
            sort=criteria.sort,
            select=select,
            omit=tuple(column for column in criteria.omit if column != join.child_column),
        ),
    )
    raw_children = await dispatch(child_ctx, child_query)
    children = materialize(child_entry, raw_children, meta, child_criteria)
    if added_column:
        link = child_entry.transformer.attribute_for(join.child_column)
        for child in children:
            child.pop(link, None)

    if join.singular:
        by_key = {
            raw.get(join.child_column): child for raw, child in zip(raw_children, children)
        }
        for raw, record in zip(raw_records, records):
            record[join.alias] = by_key.get(raw.get(join.parent_column))
        return

    grouped: dict[Any, list[dict[str, Any]]] = {}
    for raw, child in zip(raw_children, children):
        grouped.setdefault(raw.get(join.child_column), []).append(child)
    start = criteria.skip
    stop = None if criteria.limit is None else start + criteria.limit
    for raw, record in zip(raw_records, records):
        record[join.alias] = grouped.get(raw.get(join.parent_column), [])[start:stop]


__all__ = ["with_join_columns", "populate_records"]
