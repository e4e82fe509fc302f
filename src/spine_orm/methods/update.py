"""Update operation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any

from spine_orm.adapters import dispatch
from spine_orm.context import OperationContext
from spine_orm.lifecycle import run_after_hooks, run_before_hook
from spine_orm.query import QueryMethod, RawQuery
from spine_orm.records import materialize
from spine_orm.schema import LifecycleHook

from .common import compile_physical, empty_result, forge, log_completed, start_timer


async def update(
    ctx: OperationContext,
    criteria: Any,
    values: Mapping[str, Any],
    *,
    meta: Any = None,
) -> list[dict[str, Any]] | None:
    """Update every record matching *criteria* with *values*.

    ``before_update`` receives a copy of the normalized values and may
    change it; the changed values are what the adapter receives. With
    ``meta.fetch`` the updated records are returned (possibly an empty
    list) and ``after_update`` runs once per record in result order.
    Without it the result is ``None``, whatever the adapter sent back.

    A criteria that provably matches nothing never reaches the adapter:
    the result is ``[]`` with ``meta.fetch``, ``None`` without.
    """
    timer = start_timer()
    method = QueryMethod.UPDATE
    query = forge(
        ctx,
        RawQuery(
            method=method,
            using=ctx.identity,
            criteria=criteria,
            values_to_set=values,
            meta=meta,
        ),
    )
    if query is None:
        return empty_result(method, meta)

    entry = ctx.model
    values_to_set = await run_before_hook(
        entry.definition, LifecycleHook.BEFORE_UPDATE, dict(query.values_to_set), query.meta
    )
    physical = compile_physical(ctx, replace(query, values_to_set=values_to_set))
    result = await dispatch(ctx, physical)

    if not query.meta.fetch:
        log_completed(ctx, method, timer)
        return None

    records = materialize(entry, result, query.meta)
    await run_after_hooks(entry.definition, LifecycleHook.AFTER_UPDATE, records, query.meta)
    log_completed(ctx, method, timer, records=len(records))
    return records


__all__ = ["update"]
