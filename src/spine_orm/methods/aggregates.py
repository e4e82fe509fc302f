"""Aggregate operations: count, sum, avg."""

from __future__ import annotations

from typing import Any

from spine_orm.adapters import dispatch
from spine_orm.context import OperationContext
from spine_orm.query import QueryMethod, RawQuery

from .common import compile_physical, empty_result, forge, log_completed, start_timer


async def _aggregate(
    ctx: OperationContext,
    method: QueryMethod,
    criteria: Any,
    meta: Any,
    numeric_attr_name: Any = None,
) -> int | float:
    timer = start_timer()
    query = forge(
        ctx,
        RawQuery(
            method=method,
            using=ctx.identity,
            criteria=criteria,
            numeric_attr_name=numeric_attr_name,
            meta=meta,
        ),
    )
    if query is None:
        return empty_result(method, meta)

    result = await dispatch(ctx, compile_physical(ctx, query))
    log_completed(ctx, method, timer)
    return result


async def count(ctx: OperationContext, criteria: Any = None, *, meta: Any = None) -> int:
    """Number of records matching *criteria*."""
    return await _aggregate(ctx, QueryMethod.COUNT, criteria, meta)


async def sum(
    ctx: OperationContext,
    numeric_attr_name: str,
    criteria: Any = None,
    *,
    meta: Any = None,
) -> int | float:
    """Sum of *numeric_attr_name* over the records matching *criteria*."""
    return await _aggregate(ctx, QueryMethod.SUM, criteria, meta, numeric_attr_name)


async def avg(
    ctx: OperationContext,
    numeric_attr_name: str,
    criteria: Any = None,
    *,
    meta: Any = None,
) -> int | float:
    """Mean of *numeric_attr_name* over the records matching *criteria*."""
    return await _aggregate(ctx, QueryMethod.AVG, criteria, meta, numeric_attr_name)


__all__ = ["count", "sum", "avg"]
