"""
Operation functions, one module per family.

Every operation takes an :class:`~spine_orm.context.OperationContext` as
its first argument and follows the same path: stage 2 -> (before hook) ->
stage 3 -> adapter -> materialize -> (after hooks). Callers normally go
through :class:`~spine_orm.orm.ModelHandle` instead of calling these
directly.
"""

from .aggregates import avg, count, sum
from .create import create, create_each
from .destroy import destroy
from .find import find, find_one
from .stream import BATCH_SIZE, StreamCursor, StreamSignal, iterate, stream
from .update import update

__all__ = [
    "BATCH_SIZE",
    "StreamCursor",
    "StreamSignal",
    "avg",
    "count",
    "create",
    "create_each",
    "destroy",
    "find",
    "find_one",
    "iterate",
    "stream",
    "sum",
    "update",
]
