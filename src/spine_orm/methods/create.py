"""
Create operations.

``create`` inserts one record, ``create_each`` a batch. Both follow the
mutation pipeline: stage 2 -> ``before_create`` -> stage 3 -> adapter ->
materialize -> ``after_create`` once per record. Without ``meta.fetch``
the adapter's answer is not returned and no after-hooks run.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from spine_orm.adapters import dispatch
from spine_orm.context import OperationContext
from spine_orm.lifecycle import run_after_hooks, run_before_hook
from spine_orm.query import QueryMethod, RawQuery
from spine_orm.records import materialize
from spine_orm.schema import LifecycleHook

from .common import compile_physical, empty_result, forge, log_completed, start_timer


async def create(
    ctx: OperationContext,
    values: Mapping[str, Any] | None,
    *,
    meta: Any = None,
) -> list[dict[str, Any]] | None:
    """Create one record.

    Args:
        ctx: Operation context for the target model.
        values: Attribute name -> value for the new record.
        meta: Query meta (``fetch``, ``skip_all_lifecycle_callbacks``, ...).

    Returns:
        A one-element list holding the new record when ``meta.fetch`` is
        set, otherwise ``None``.
    """
    timer = start_timer()
    method = QueryMethod.CREATE
    query = forge(
        ctx, RawQuery(method=method, using=ctx.identity, values_to_set=values, meta=meta)
    )
    if query is None:
        return empty_result(method, meta)

    entry = ctx.model
    new_record = await run_before_hook(
        entry.definition, LifecycleHook.BEFORE_CREATE, dict(query.values_to_set), query.meta
    )
    physical = compile_physical(ctx, replace(query, values_to_set=new_record))
    result = await dispatch(ctx, physical)

    if not query.meta.fetch:
        log_completed(ctx, method, timer)
        return None

    records = materialize(entry, [result], query.meta)
    await run_after_hooks(entry.definition, LifecycleHook.AFTER_CREATE, records, query.meta)
    log_completed(ctx, method, timer)
    return records


async def create_each(
    ctx: OperationContext,
    records: Sequence[Mapping[str, Any]],
    *,
    meta: Any = None,
) -> list[dict[str, Any]] | None:
    """Create several records with one adapter call.

    ``before_create`` runs once per new record, in order, before anything
    is sent to the adapter. Returns the created records when
    ``meta.fetch`` is set, otherwise ``None``.
    """
    timer = start_timer()
    method = QueryMethod.CREATE_EACH
    query = forge(
        ctx, RawQuery(method=method, using=ctx.identity, new_records=records, meta=meta)
    )
    if query is None:
        return empty_result(method, meta)

    entry = ctx.model
    new_records = []
    for record in query.new_records:
        new_records.append(
            await run_before_hook(
                entry.definition, LifecycleHook.BEFORE_CREATE, dict(record), query.meta
            )
        )
    physical = compile_physical(ctx, replace(query, new_records=tuple(new_records)))
    result = await dispatch(ctx, physical)

    if not query.meta.fetch:
        log_completed(ctx, method, timer, records=len(new_records))
        return None

    created = materialize(entry, result, query.meta)
    await run_after_hooks(entry.definition, LifecycleHook.AFTER_CREATE, created, query.meta)
    log_completed(ctx, method, timer, records=len(created))
    return created


__all__ = ["create", "create_each"]
