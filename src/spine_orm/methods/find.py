"""
Read operations.

``find`` returns every matching record, ``find_one`` at most one. Reads
have no lifecycle hooks; the adapter's answer must be a list of records
and every record is verified against the model's schema before
populates are attached.
"""

from __future__ import annotations

from typing import Any

from spine_orm.adapters import dispatch
from spine_orm.context import OperationContext
from spine_orm.errors import UsageError
from spine_orm.query import QueryMethod, RawQuery, StageTwoQuery
from spine_orm.records import materialize

from .common import compile_physical, empty_result, forge, log_completed, start_timer
from .populate import populate_records, with_join_columns


async def run_find(ctx: OperationContext, query: StageTwoQuery) -> list[dict[str, Any]]:
    """Execute a compiled read: stage 3, adapter ``find``, materialize, populate.

    Also used by the stream cursor for each batch.
    """
    entry = ctx.model
    query = with_join_columns(query, entry.definition)
    physical = compile_physical(ctx, query)
    raw_records = await dispatch(ctx, physical)
    records = materialize(entry, raw_records, query.meta, query.criteria)
    await populate_records(ctx, query, physical, raw_records, records)
    return records


async def find(
    ctx: OperationContext,
    criteria: Any = None,
    *,
    populates: Any = None,
    meta: Any = None,
) -> list[dict[str, Any]]:
    """Find records matching *criteria*.

    Args:
        ctx: Operation context for the target model.
        criteria: Primary key, list of primary keys, where clause, or full
            criteria (``where``, ``limit``, ``skip``, ``sort``, ``select``,
            ``omit``). ``None`` matches every record.
        populates: Association name, list of names, or name -> criteria.
        meta: Query meta.

    Returns:
        The matching records, in adapter order.
    """
    timer = start_timer()
    method = QueryMethod.FIND
    query = forge(
        ctx,
        RawQuery(
            method=method, using=ctx.identity, criteria=criteria, populates=populates, meta=meta
        ),
    )
    if query is None:
        return empty_result(method, meta)

    records = await run_find(ctx, query)
    log_completed(ctx, method, timer, records=len(records))
    return records


async def find_one(
    ctx: OperationContext,
    criteria: Any = None,
    *,
    populates: Any = None,
    meta: Any = None,
) -> dict[str, Any] | None:
    """Find the single record matching *criteria*, or ``None``.

    More than one match is a usage error (``E_MORE_THAN_ONE_MATCH``): the
    criteria was expected to identify one record.
    """
    timer = start_timer()
    method = QueryMethod.FIND_ONE
    query = forge(
        ctx,
        RawQuery(
            method=method, using=ctx.identity, criteria=criteria, populates=populates, meta=meta
        ),
    )
    if query is None:
        return empty_result(method, meta)

    records = await run_find(ctx, query)
    if len(records) > 1:
        pk = ctx.model.definition.primary_key
        found = ", ".join(repr(record.get(pk)) for record in records[:5])
        raise UsageError(
            f"More than one matching record found for `find_one` on `{ctx.identity}` "
            f"(primary keys: {found}{', ...' if len(records) > 5 else ''}).",
            code="E_MORE_THAN_ONE_MATCH",
        ).with_context(model_identity=ctx.identity, method=method.value)
    log_completed(ctx, method, timer, records=len(records))
    return records[0] if records else None


__all__ = ["run_find", "find", "find_one"]
