"""Normalization of populate (association loading) clauses."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from spine_orm.errors import ForgeError, NoopQuery
from spine_orm.schema import ModelRegistry

from .criteria import normalize_criteria
from .descriptor import Criteria, QueryMethod


def normalize_populates(
    populates: Any,
    identity: str,
    registry: ModelRegistry,
) -> dict[str, Criteria | None]:
    """Validate populates for model *identity*.

    Returns association name -> child criteria. ``None`` marks a populate
    whose criteria can match nothing, so no child query is needed.
    """
    code = "E_INVALID_POPULATES"
    if populates is None:
        return {}
    if isinstance(populates, str):
        populates = {populates: None}
    elif isinstance(populates, (list, tuple)):
        populates = {name: None for name in populates}
    if not isinstance(populates, Mapping):
        raise ForgeError(code, f"Populates should be a dictionary, got {populates!r}")

    definition = registry.get(identity).definition
    result: dict[str, Criteria | None] = {}
    for name, child_criteria in populates.items():
        attr = definition.attribute(name)
        if attr is None or not attr.is_association:
            raise ForgeError(
                code,
                f"Could not populate `{name}`: `{definition.identity}` has no such association",
            )
        child_identity = attr.model or attr.collection
        child = registry.get(child_identity).definition

        if child_criteria is True:
            child_criteria = None
        if attr.is_singular_association and child_criteria:
            raise ForgeError(
                code,
                f"Cannot use criteria when populating singular association `{name}`",
            )

        try:
            result[name] = normalize_criteria(child_criteria, child, QueryMethod.FIND)
        except NoopQuery:
            result[name] = None
        except ForgeError as exc:
            raise ForgeError(
                code, f"Invalid criteria for populating `{name}`: {exc.details}"
            ) from exc
    return result


__all__ = ["normalize_populates"]
