"""Adapter dispatcher: the untrusted plugin boundary.

Manifesto:
    An adapter is somebody else's code. The dispatcher is the only place
    that calls it, and it treats every answer as suspect: the method must
    exist, errors must be raised (not returned), and results must have the
    shape the query asked for. Anything else is reported as an
    :class:`~spine_orm.errors.AdapterContractError` naming the datastore,
    instead of leaking a malformed value into user code.

Features:
    - Method lookup with :class:`UnsupportedOperationError` on absence
    - Adapter errors tagged with ``model_identity``
    - ``notUnique`` footprints rewritten into :class:`UniquenessError`
    - Non-fetching mutations that return records: warning, payload dropped
    - Shape checks for fetching mutations, reads and aggregates

Tags:
    spine-orm, adapter, dispatcher, contract-validation

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from spine_orm.context import OperationContext
from spine_orm.errors import AdapterContractError, SpineOrmError, UnsupportedOperationError
from spine_orm.logging import get_logger
from spine_orm.query import QueryMethod, StageThreeQuery
from spine_orm.utils import call_maybe_async, is_number, is_sequence_of_records

from .uniqueness import is_uniqueness_violation, transform_uniqueness_error

logger = get_logger(__name__)

_MULTI_RECORD_MUTATIONS = frozenset(
    {QueryMethod.CREATE_EACH, QueryMethod.UPDATE, QueryMethod.DESTROY}
)


def _preview(value: Any, limit: int = 500) -> str:
    text = repr(value)
    return text if len(text) <= limit else text[:limit] + "..."


async def dispatch(ctx: OperationContext, query: StageThreeQuery) -> Any:
    """Send *query* to the adapter bound to ``ctx.identity``.

    Returns the validated raw result: ``None`` for non-fetching mutations,
    a mapping for fetching ``create``, a sequence of mappings for other
    fetching mutations and reads, a number for aggregates.
    """
    entry = ctx.model
    identity = entry.identity
    datastore = entry.datastore.name
    method_name = query.method.adapter_method

    adapter_method = getattr(entry.adapter, method_name, None)
    if not callable(adapter_method):
        raise UnsupportedOperationError(identity, method_name)

    logger.debug(
        "query_dispatched",
        model=identity,
        method=query.method.value,
        datastore=datastore,
        request_id=ctx.request_id,
    )

    try:
        raw = await call_maybe_async(adapter_method, datastore, query)
    except Exception as exc:
        _tag(exc, identity, query, datastore)
        if is_uniqueness_violation(exc):
            raise transform_uniqueness_error(exc, ctx.omen, identity, ctx.registry) from exc
        raise

    if isinstance(raw, BaseException):
        raise AdapterContractError(
            "If an error is sent back from the adapter, it should always be raised. "
            f"But instead, the `{method_name}` method of the adapter for datastore "
            f"`{datastore}` returned it: {_preview(raw)}"
        ).with_context(model_identity=identity, method=method_name, datastore=datastore)

    return _validate_result(raw, query, identity, datastore)


def _tag(exc: Exception, identity: str, query: StageThreeQuery, datastore: str) -> None:
    """Attach the model identity to an adapter error."""
    if isinstance(exc, SpineOrmError):
        exc.with_context(model_identity=identity, method=query.method.value, datastore=datastore)
    try:
        exc.model_identity = identity  # type: ignore[attr-defined]
    except AttributeError:
        exc.add_note(f"model_identity: {identity}")


def _contract_error(
    expected: str, raw: Any, query: StageThreeQuery, identity: str, datastore: str
) -> AdapterContractError:
    method_name = query.method.adapter_method
    return AdapterContractError(
        f"Unexpected behavior in database adapter: the adapter for datastore "
        f"`{datastore}` should have sent back {expected} from its `{method_name}` "
        f"method. But instead, got: {_preview(raw)}"
    ).with_context(model_identity=identity, method=method_name, datastore=datastore)


def _validate_result(raw: Any, query: StageThreeQuery, identity: str, datastore: str) -> Any:
    method = query.method

    if method.is_mutation and not query.meta.fetch:
        unexpected = (
            isinstance(raw, Mapping)
            if method is QueryMethod.CREATE
            else is_sequence_of_records(raw) and len(raw) > 0
        )
        if unexpected:
            logger.warning(
                "adapter_unexpected_result",
                model=identity,
                method=method.value,
                datastore=datastore,
                result=_preview(raw),
                detail=(
                    "fetch is not enabled, so the adapter should not have sent back "
                    "records; ignoring them and proceeding anyway"
                ),
            )
        return None

    if method is QueryMethod.CREATE:
        if not isinstance(raw, Mapping):
            raise _contract_error(
                "a dictionary (the new record), since `fetch: True` was enabled,",
                raw, query, identity, datastore,
            )
        return raw

    if method in _MULTI_RECORD_MUTATIONS:
        if not is_sequence_of_records(raw):
            raise _contract_error(
                "a list of records, since `fetch: True` was enabled,",
                raw, query, identity, datastore,
            )
        return list(raw)

    if method is QueryMethod.COUNT:
        if not is_number(raw) or not float(raw).is_integer() or raw < 0:
            raise _contract_error("a non-negative integer", raw, query, identity, datastore)
        return int(raw)

    if method in (QueryMethod.SUM, QueryMethod.AVG):
        if not is_number(raw):
            raise _contract_error("a number", raw, query, identity, datastore)
        return raw

    # find / find_one / stream batches
    if not is_sequence_of_records(raw):
        raise _contract_error("a list of records", raw, query, identity, datastore)
    return list(raw)


__all__ = ["dispatch"]
