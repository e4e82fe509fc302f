"""
Streaming reads.

Manifesto:
    An unbounded result set is read as a sequence of bounded ``find``
    calls. Each batch is an independent read of at most ``BATCH_SIZE``
    records at ``skip = base_skip + index * BATCH_SIZE``, with the original
    where/sort/select and populates. Batch *k + 1* is never fetched before
    the iteratee for batch *k* has completed.

Features:
    - ``stream()``: drive ``each_record`` or ``each_batch`` (plain or async)
    - ``iterate()``: the same cursor as an async iterator of records
    - ``StreamSignal.STOP``: end the stream early, without an error

State machine::

    more-batches ──fetch──▶ batch(N) ──N == 0──────────────▶ exhausted
         ▲                     │
         └──── iteratee ok ────┘ ──limit reached / STOP──▶ exhausted

    Any error (adapter, verification, iteratee) halts the cursor; no
    further batch is fetched.

Tags:
    spine-orm, stream, cursor, pagination

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import aclosing
from dataclasses import replace
from enum import Enum
from typing import Any

from spine_orm.context import OperationContext
from spine_orm.logging import get_logger
from spine_orm.query import QueryMethod, RawQuery, StageTwoQuery
from spine_orm.utils import call_maybe_async

from .common import forge, log_completed, start_timer
from .find import run_find

logger = get_logger(__name__)

BATCH_SIZE = 30


class StreamSignal(str, Enum):
    """Values an iteratee may return to steer the stream."""

    STOP = "stop"


class StreamCursor:
    """Paginated reader over one compiled read query."""

    def __init__(self, ctx: OperationContext, query: StageTwoQuery):
        self._ctx = ctx
        self._query = replace(query, method=QueryMethod.FIND, each_record_fn=None, each_batch_fn=None)
        self.batches_fetched = 0

    async def batches(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield non-empty batches until the source or the limit is exhausted."""
        criteria = self._query.criteria
        remaining = criteria.limit
        index = 0
        while remaining is None or remaining > 0:
            limit = BATCH_SIZE if remaining is None else min(BATCH_SIZE, remaining)
            batch_query = replace(
                self._query,
                criteria=replace(criteria, skip=criteria.skip + index * BATCH_SIZE, limit=limit),
            )
            batch = await run_find(self._ctx, batch_query)
            self.batches_fetched += 1
            logger.debug(
                "stream_batch",
                model=self._ctx.identity,
                index=index,
                size=len(batch),
                request_id=self._ctx.request_id,
            )
            if not batch:
                return
            yield batch
            index += 1
            if remaining is not None:
                remaining -= len(batch)


async def _feed(batch: list[dict[str, Any]], query: StageTwoQuery) -> bool:
    """Hand *batch* to the iteratee. Returns ``False`` once the iteratee asks to stop."""
    if query.each_batch_fn is not None:
        return await call_maybe_async(query.each_batch_fn, batch) is not StreamSignal.STOP
    for record in batch:
        if await call_maybe_async(query.each_record_fn, record) is StreamSignal.STOP:
            return False
    return True


async def stream(
    ctx: OperationContext,
    criteria: Any = None,
    *,
    each_record: Callable[[dict[str, Any]], Any] | None = None,
    each_batch: Callable[[list[dict[str, Any]]], Any] | None = None,
    populates: Any = None,
    meta: Any = None,
) -> None:
    """Iterate over every record matching *criteria*, one batch at a time.

    Exactly one of *each_record* (called once per record, in order) or
    *each_batch* (called once per batch) must be given. The first error
    raised by an iteratee, the adapter or record verification ends the
    stream and is raised to the caller. Returning ``StreamSignal.STOP``
    from an iteratee ends the stream without an error.
    """
    timer = start_timer()
    method = QueryMethod.STREAM
    query = forge(
        ctx,
        RawQuery(
            method=method,
            using=ctx.identity,
            criteria=criteria,
            populates=populates,
            each_record_fn=each_record,
            each_batch_fn=each_batch,
            meta=meta,
        ),
    )
    if query is None:
        return None

    cursor = StreamCursor(ctx, query)
    stopped = False
    async with aclosing(cursor.batches()) as batches:
        async for batch in batches:
            if not await _feed(batch, query):
                stopped = True
                break
    log_completed(ctx, method, timer, batches=cursor.batches_fetched, stopped=stopped)
    return None


async def iterate(
    ctx: OperationContext,
    criteria: Any = None,
    *,
    populates: Any = None,
    meta: Any = None,
) -> AsyncIterator[dict[str, Any]]:
    """Async-iterator form of :func:`stream`, yielding one record at a time.

    Breaking out of the ``async for`` loop stops the cursor; the next
    batch is only fetched once every record of the current one has been
    consumed.
    """
    query = forge(
        ctx,
        RawQuery(
            method=QueryMethod.FIND,
            using=ctx.identity,
            criteria=criteria,
            populates=populates,
            meta=meta,
        ),
    )
    if query is None:
        return
    async with aclosing(StreamCursor(ctx, query).batches()) as batches:
        async for batch in batches:
            for record in batch:
                yield record


__all__ = ["BATCH_SIZE", "StreamSignal", "StreamCursor", "stream", "iterate"]
