"""Normalization of values to set (update) and new records (create)."""

from __future__ import annotations

import copy
import time
from collections.abc import Mapping
from typing import Any

from spine_orm.errors import ForgeError
from spine_orm.schema import ModelDefinition, check_value


def now_ms() -> int:
    """Timestamp used for ``auto_created_at`` / ``auto_updated_at``."""
    return int(time.time() * 1000)


def _check_known(
    code: str, values: Mapping[str, Any], definition: ModelDefinition
) -> None:
    for name, value in values.items():
        attr = definition.attribute(name)
        if attr is None:
            raise ForgeError(
                code, f"`{name}` is not a recognized attribute of `{definition.identity}`"
            )
        if attr.is_plural_association:
            raise ForgeError(
                code,
                f"Cannot set `{name}`: it is a plural association (collection); "
                "set the foreign key on the associated records instead",
            )
        if value is None and attr.required:
            raise ForgeError(code, f"`{name}` is required and cannot be set to None")
        problem = check_value(name, attr, value)
        if problem:
            raise ForgeError(code, problem)


def normalize_values_to_set(
    values: Any,
    definition: ModelDefinition,
    *,
    timestamp: int | None = None,
) -> dict[str, Any]:
    """Validate the values of an ``update``; stamps ``auto_updated_at``."""
    code = "E_INVALID_VALUES_TO_SET"
    if not isinstance(values, Mapping):
        raise ForgeError(code, f"Values to set should be a dictionary, got {values!r}")
    if not values:
        raise ForgeError(code, "Values to set should not be empty")

    _check_known(code, values, definition)

    result = dict(values)
    stamp = now_ms() if timestamp is None else timestamp
    for name, attr in definition.attributes.items():
        if attr.auto_updated_at and name not in result:
            result[name] = stamp
    return result


def normalize_new_record(
    record: Any,
    definition: ModelDefinition,
    *,
    code: str = "E_INVALID_VALUES_TO_SET",
    timestamp: int | None = None,
) -> dict[str, Any]:
    """Validate a record for ``create``; applies defaults and timestamps.

    The primary key may be omitted (the datastore assigns it).
    """
    if not isinstance(record, Mapping):
        raise ForgeError(code, f"New record should be a dictionary, got {record!r}")

    _check_known(code, record, definition)

    result = dict(record)
    stamp = now_ms() if timestamp is None else timestamp
    for name, attr in definition.stored_attributes().items():
        if name in result:
            continue
        if attr.auto_created_at or attr.auto_updated_at:
            result[name] = stamp
        elif attr.default is not None:
            result[name] = copy.deepcopy(attr.default)
        elif attr.required and name != definition.primary_key:
            raise ForgeError(code, f"Missing value for required attribute `{name}`")
    return result


__all__ = ["now_ms", "normalize_values_to_set", "normalize_new_record"]
