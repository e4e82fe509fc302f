"""Model definitions and lifecycle hook names."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .attributes import AttributeDef


class LifecycleHook(str, Enum):
    """Recognized lifecycle hook names."""

    BEFORE_CREATE = "before_create"
    AFTER_CREATE = "after_create"
    BEFORE_UPDATE = "before_update"
    AFTER_UPDATE = "after_update"
    BEFORE_DESTROY = "before_destroy"
    AFTER_DESTROY = "after_destroy"


@dataclass(frozen=True)
class ModelDefinition:
    """
    Declaration of one logical model.

    Attributes:
        identity: Registry key (``"user"``)
        attributes: Attribute name -> :class:`AttributeDef`
        primary_key: Name of the primary key attribute
        table_name: Physical table/collection name (defaults to ``identity``)
        datastore: Name of the datastore this model is bound to
        hooks: Lifecycle hook name -> callable (plain or ``async``)
    """

    identity: str
    attributes: Mapping[str, AttributeDef]
    primary_key: str = "id"
    table_name: str | None = None
    datastore: str = "default"
    hooks: Mapping[str, Callable[..., Any]] = field(default_factory=dict)

    @property
    def table(self) -> str:
        return self.table_name or self.identity

    def attribute(self, name: str) -> AttributeDef | None:
        return self.attributes.get(name)

    def has_hook(self, hook: LifecycleHook | str) -> bool:
        return LifecycleHook(hook).value in self.hooks

    def get_hook(self, hook: LifecycleHook | str) -> Callable[..., Any] | None:
        return self.hooks.get(LifecycleHook(hook).value)

    def stored_attributes(self) -> dict[str, AttributeDef]:
        """Attributes that have a column on this model's table."""
        return {
            name: attr
            for name, attr in self.attributes.items()
            if not attr.is_plural_association
        }


__all__ = ["LifecycleHook", "ModelDefinition"]
