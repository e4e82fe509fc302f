"""Rewrite adapter uniqueness violations into :class:`UniquenessError`."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from spine_orm.errors import UniquenessError
from spine_orm.omen import Omen
from spine_orm.schema import ModelRegistry


def get_footprint(error: BaseException) -> Mapping[str, Any] | None:
    footprint = getattr(error, "footprint", None)
    return footprint if isinstance(footprint, Mapping) else None


def is_uniqueness_violation(error: BaseException) -> bool:
    footprint = get_footprint(error)
    return footprint is not None and footprint.get("identity") == "notUnique"


def transform_uniqueness_error(
    error: BaseException,
    omen: Omen,
    identity: str,
    registry: ModelRegistry,
) -> UniquenessError:
    """Build a :class:`UniquenessError` from an adapter's ``notUnique`` error.

    ``footprint["keys"]`` holds physical column names; they are mapped back
    to attribute names with the model's transformer. The new error is
    chained to *error* and attributed to the caller's call site.
    """
    footprint = dict(get_footprint(error) or {})
    keys = footprint.get("keys") or []
    if not isinstance(keys, (list, tuple)):
        keys = [keys]

    transformer = registry.get(identity).transformer
    attr_names = [transformer.attribute_for(str(column)) for column in keys]

    unique_error = UniquenessError(
        identity,
        attr_names,
        footprint=footprint,
        cause=error,
    )
    omen.attach(unique_error)
    return unique_error


__all__ = ["get_footprint", "is_uniqueness_violation", "transform_uniqueness_error"]
