"""Helpers shared by every operation function."""

from __future__ import annotations

import time
from typing import Any

from spine_orm.context import OperationContext
from spine_orm.errors import ForgeError, NoopQuery, UsageError
from spine_orm.logging import get_logger
from spine_orm.query import (
    QueryMeta,
    QueryMethod,
    RawQuery,
    StageThreeQuery,
    StageTwoQuery,
    forge_stage_three_query,
    forge_stage_two_query,
)

logger = get_logger(__name__)


class _Timer:
    """Minimal stopwatch for timing operations."""

    __slots__ = ("_start",)

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._start) * 1000


def start_timer() -> _Timer:
    """Return a lightweight timer.  Use ``timer.elapsed_ms`` when done."""
    return _Timer()


def forge(ctx: OperationContext, raw: RawQuery) -> StageTwoQuery | None:
    """Run the stage-2 compiler for *raw*.

    Returns ``None`` when the query is a provable no-op; callers answer
    with :func:`empty_result` without touching the adapter. Every other
    compiler failure becomes a :class:`UsageError`.
    """
    try:
        return forge_stage_two_query(raw, ctx.registry)
    except NoopQuery as noop:
        logger.debug(
            "query_noop",
            model=ctx.identity,
            method=raw.method.value,
            reason=noop.details,
            request_id=ctx.request_id,
        )
        return None
    except ForgeError as exc:
        raise UsageError.from_forge_error(exc).with_context(
            model_identity=ctx.identity, method=raw.method.value
        ) from exc


def empty_result(method: QueryMethod, meta: Any) -> Any:
    """Result synthesized for a no-op query."""
    if method.is_aggregate:
        return 0
    if method is QueryMethod.FIND:
        return []
    if method in (QueryMethod.FIND_ONE, QueryMethod.STREAM):
        return None
    return [] if QueryMeta.coerce(meta).fetch else None


def compile_physical(ctx: OperationContext, query: StageTwoQuery) -> StageThreeQuery:
    return forge_stage_three_query(query, ctx.registry)


def log_completed(ctx: OperationContext, method: QueryMethod, timer: _Timer, **fields: Any) -> None:
    logger.debug(
        "query_completed",
        model=ctx.identity,
        method=method.value,
        elapsed_ms=round(timer.elapsed_ms, 3),
        request_id=ctx.request_id,
        **fields,
    )


__all__ = ["start_timer", "forge", "empty_result", "compile_physical", "log_completed"]
