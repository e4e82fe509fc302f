"""Destroy operation."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from spine_orm.adapters import dispatch
from spine_orm.context import OperationContext
from spine_orm.lifecycle import run_after_hooks, run_before_hook
from spine_orm.query import QueryMethod, RawQuery
from spine_orm.records import materialize
from spine_orm.schema import LifecycleHook

from .common import compile_physical, empty_result, forge, log_completed, start_timer


async def destroy(
    ctx: OperationContext,
    criteria: Any,
    *,
    meta: Any = None,
) -> list[dict[str, Any]] | None:
    """Destroy every record matching *criteria*.

    ``before_destroy`` receives a copy of the normalized ``where`` clause
    and may narrow it. Returns the destroyed records with ``meta.fetch``,
    otherwise ``None``.
    """
    timer = start_timer()
    method = QueryMethod.DESTROY
    query = forge(
        ctx, RawQuery(method=method, using=ctx.identity, criteria=criteria, meta=meta)
    )
    if query is None:
        return empty_result(method, meta)

    entry = ctx.model
    where = await run_before_hook(
        entry.definition, LifecycleHook.BEFORE_DESTROY, dict(query.criteria.where), query.meta
    )
    physical = compile_physical(
        ctx, replace(query, criteria=replace(query.criteria, where=where))
    )
    result = await dispatch(ctx, physical)

    if not query.meta.fetch:
        log_completed(ctx, method, timer)
        return None

    records = materialize(entry, result, query.meta)
    await run_after_hooks(entry.definition, LifecycleHook.AFTER_DESTROY, records, query.meta)
    log_completed(ctx, method, timer, records=len(records))
    return records


__all__ = ["destroy"]
