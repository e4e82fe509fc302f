"""Small helpers shared by the hook runner, dispatcher and stream cursor."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from typing import Any


async def call_maybe_async(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call *fn* and await the result if it is awaitable.

    User hooks, stream iteratees and adapter methods may be plain functions
    or coroutines. An exception raised before the first ``await`` and one
    raised after it reach the caller the same way.
    """
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def is_sequence_of_records(value: Any) -> bool:
    """True for any sequence except strings and bytes."""
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
