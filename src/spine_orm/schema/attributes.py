"""Attribute declarations and logical type checks."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from spine_orm.utils import is_number


class AttributeType(str, Enum):
    """Logical attribute types."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    JSON = "json"
    REF = "ref"


@dataclass(frozen=True)
class AttributeDef:
    """
    Declaration of one model attribute.

    ``model`` marks a singular association stored as a foreign-key column;
    ``collection`` + ``via`` mark a one-to-many association that is not
    stored on this model's table at all.
    """

    type: AttributeType | str = AttributeType.STRING
    column_name: str | None = None
    required: bool = False
    default: Any = None
    auto_created_at: bool = False
    auto_updated_at: bool = False
    model: str | None = None
    collection: str | None = None
    via: str | None = None

    @property
    def logical_type(self) -> AttributeType:
        return AttributeType(self.type)

    @property
    def is_singular_association(self) -> bool:
        return self.model is not None

    @property
    def is_plural_association(self) -> bool:
        return self.collection is not None

    @property
    def is_association(self) -> bool:
        return self.model is not None or self.collection is not None


def _is_json_compatible(value: Any) -> bool:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def check_value(attr_name: str, attr: AttributeDef, value: Any) -> str | None:
    """Type-check *value* against *attr*.

    Returns a human-readable problem description, or ``None`` if the value
    is acceptable. ``None`` values are checked by the caller (``required``).
    """
    if value is None:
        return None

    if attr.is_singular_association:
        if isinstance(value, str) or is_number(value):
            return None
        return (
            f"`{attr_name}` is an association to `{attr.model}`; expected a "
            f"primary key value (string or number), got {value!r}"
        )

    match attr.logical_type:
        case AttributeType.NUMBER:
            ok = is_number(value)
        case AttributeType.STRING:
            ok = isinstance(value, str)
        case AttributeType.BOOLEAN:
            ok = isinstance(value, bool)
        case AttributeType.JSON:
            ok = _is_json_compatible(value)
        case _:
            ok = True

    if ok:
        return None
    return f"`{attr_name}` should be a {attr.logical_type.value}, got {value!r}"


__all__ = ["AttributeType", "AttributeDef", "check_value"]
