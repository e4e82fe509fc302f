"""Lifecycle hook runner.

Before-hooks run once per operation with the logical values payload and
may modify it. After-hooks run once per resulting record, strictly in
result order; the first one to raise stops the rest. Completed hooks are
not undone. A model that registers no hook for a name is a no-op, and
``meta.skip_all_lifecycle_callbacks`` turns every hook off.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from spine_orm.logging import get_logger
from spine_orm.query import QueryMeta
from spine_orm.schema import LifecycleHook, ModelDefinition
from spine_orm.utils import call_maybe_async

logger = get_logger(__name__)


def _resolve(definition: ModelDefinition, hook: LifecycleHook, meta: QueryMeta):
    if meta.skip_all_lifecycle_callbacks or not definition.has_hook(hook):
        return None
    return definition.get_hook(hook)


async def run_before_hook(
    definition: ModelDefinition,
    hook: LifecycleHook,
    payload: Any,
    meta: QueryMeta,
) -> Any:
    """Run *hook* on *payload* if registered; returns the (possibly modified) payload."""
    fn = _resolve(definition, hook, meta)
    if fn is None:
        return payload
    logger.debug("lifecycle_hook", model=definition.identity, hook=hook.value)
    await call_maybe_async(fn, payload)
    return payload


async def run_after_hooks(
    definition: ModelDefinition,
    hook: LifecycleHook,
    records: Sequence[dict[str, Any]],
    meta: QueryMeta,
) -> None:
    """Run *hook* once per record, in order, stopping at the first error."""
    fn = _resolve(definition, hook, meta)
    if fn is None:
        return
    logger.debug("lifecycle_hook", model=definition.identity, hook=hook.value, records=len(records))
    for record in records:
        await call_maybe_async(fn, record)


__all__ = ["run_before_hook", "run_after_hooks"]
