"""Stage-2 compiler: raw query -> canonical logical query.

``forge_stage_two_query`` is the single gate every operation passes
through before anything user-visible happens. It either returns a
:class:`StageTwoQuery` or raises:

==============================  ============================================
code                            meaning
==============================  ============================================
``E_INVALID_CRITERIA``          criteria violates the criteria grammar
``E_INVALID_VALUES_TO_SET``     unknown attributes / type failures
``E_INVALID_NEW_RECORDS``       ``create_each`` got something other than a
                                list of records
``E_INVALID_POPULATES``         unknown association / bad nested criteria
``E_INVALID_STREAM_ITERATEE``   neither or both stream iteratees
``E_INVALID_NUMERIC_ATTR_NAME`` sum/avg attribute missing or not numeric
``E_INVALID_META``              unrecognized meta key
``E_NOOP``                      criteria provably matches nothing
==============================  ============================================
"""

from __future__ import annotations

from typing import Any

from spine_orm.errors import ConfigError, ForgeError
from spine_orm.schema import AttributeType, ModelRegistry

from .criteria import normalize_criteria
from .descriptor import QueryMeta, QueryMethod, RawQuery, StageTwoQuery
from .populates import normalize_populates
from .values import normalize_new_record, normalize_values_to_set, now_ms

_CRITERIA_FORBIDDEN = frozenset({QueryMethod.CREATE, QueryMethod.CREATE_EACH})
_POPULATE_METHODS = frozenset({QueryMethod.FIND, QueryMethod.FIND_ONE, QueryMethod.STREAM})


def _forbid(query: RawQuery, key: str, code: str) -> None:
    if getattr(query, key) is not None:
        raise ForgeError(code, f"`{query.method.value}` does not accept `{key}`")


def forge_stage_two_query(query: RawQuery, registry: ModelRegistry) -> StageTwoQuery:
    """Validate and normalize *query* against *registry*."""
    method = QueryMethod(query.method)

    if query.using not in registry:
        raise ConfigError(f"Unknown model: {query.using}")
    definition = registry.get(query.using).definition

    try:
        meta = QueryMeta.coerce(query.meta)
    except TypeError as exc:
        raise ForgeError("E_INVALID_META", str(exc)) from exc

    stamp = now_ms()
    fields: dict[str, Any] = {"method": method, "using": query.using, "meta": meta}

    # Criteria
    if method in _CRITERIA_FORBIDDEN:
        _forbid(query, "criteria", "E_INVALID_CRITERIA")
    else:
        fields["criteria"] = normalize_criteria(query.criteria, definition, method)

    # Values to set / new records
    if method is QueryMethod.CREATE:
        fields["values_to_set"] = normalize_new_record(
            query.values_to_set if query.values_to_set is not None else {},
            definition,
            timestamp=stamp,
        )
    elif method is QueryMethod.UPDATE:
        fields["values_to_set"] = normalize_values_to_set(
            query.values_to_set, definition, timestamp=stamp
        )
    else:
        _forbid(query, "values_to_set", "E_INVALID_VALUES_TO_SET")

    if method is QueryMethod.CREATE_EACH:
        records = query.new_records
        if not isinstance(records, (list, tuple)):
            raise ForgeError(
                "E_INVALID_NEW_RECORDS", f"Expected a list of new records, got {records!r}"
            )
        fields["new_records"] = tuple(
            normalize_new_record(
                record, definition, code="E_INVALID_NEW_RECORDS", timestamp=stamp
            )
            for record in records
        )
    else:
        _forbid(query, "new_records", "E_INVALID_NEW_RECORDS")

    # Numeric attribute (sum / avg)
    if method in (QueryMethod.SUM, QueryMethod.AVG):
        fields["numeric_attr_name"] = _numeric_attr_name(query.numeric_attr_name, definition)
    else:
        _forbid(query, "numeric_attr_name", "E_INVALID_NUMERIC_ATTR_NAME")

    # Populates
    if method in _POPULATE_METHODS:
        fields["populates"] = normalize_populates(query.populates, query.using, registry)
    else:
        _forbid(query, "populates", "E_INVALID_POPULATES")

    # Stream iteratees
    if method is QueryMethod.STREAM:
        fields.update(_stream_iteratees(query))
    else:
        _forbid(query, "each_record_fn", "E_INVALID_STREAM_ITERATEE")
        _forbid(query, "each_batch_fn", "E_INVALID_STREAM_ITERATEE")

    return StageTwoQuery(**fields)


def _numeric_attr_name(name: Any, definition) -> str:
    code = "E_INVALID_NUMERIC_ATTR_NAME"
    if not isinstance(name, str) or not name:
        raise ForgeError(code, f"Expected the name of a numeric attribute, got {name!r}")
    attr = definition.attribute(name)
    if attr is None:
        raise ForgeError(code, f"`{name}` is not a recognized attribute of `{definition.identity}`")
    if attr.is_association or attr.logical_type is not AttributeType.NUMBER:
        raise ForgeError(code, f"`{name}` is not a numeric attribute")
    return name


def _stream_iteratees(query: RawQuery) -> dict[str, Any]:
    code = "E_INVALID_STREAM_ITERATEE"
    each_record, each_batch = query.each_record_fn, query.each_batch_fn
    if each_record is None and each_batch is None:
        raise ForgeError(code, "Neither `each_record` nor `each_batch` was provided.")
    if each_record is not None and each_batch is not None:
        raise ForgeError(code, "Both `each_record` and `each_batch` were provided.")
    iteratee = each_record if each_record is not None else each_batch
    if not callable(iteratee):
        raise ForgeError(code, f"Iteratee should be a function, got {iteratee!r}")
    return {"each_record_fn": each_record, "each_batch_fn": each_batch}


__all__ = ["forge_stage_two_query"]
