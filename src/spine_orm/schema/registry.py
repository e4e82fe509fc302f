"""Model registry: validated, read-only model and datastore bindings.

Manifesto:
    Every operation needs the same facts about a model -- its attributes,
    hooks, column mapping and adapter. They are checked once, when the
    registry is built, and never change afterwards. Operations receive the
    registry explicitly; nothing looks it up from a global.

Features:
    - ``ModelRegistry.build()``: validate definitions and datastores
    - Association graph checks (``model=``, ``collection=`` / ``via=``)
    - Per-model :class:`Transformer` built up front
    - Read-only mappings (``MappingProxyType``) after construction

Tags:
    spine-orm, registry, model-definition, immutable

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Any

from spine_orm.errors import ConfigError

from .attributes import AttributeType
from .model import LifecycleHook, ModelDefinition
from .transformer import Transformer


@dataclass(frozen=True)
class Datastore:
    """A named datastore and the adapter that serves it."""

    name: str
    adapter: Any


@dataclass(frozen=True)
class RegisteredModel:
    """Everything an operation needs to know about one model."""

    definition: ModelDefinition
    transformer: Transformer
    datastore: Datastore

    @property
    def identity(self) -> str:
        return self.definition.identity

    @property
    def adapter(self) -> Any:
        return self.datastore.adapter


class ModelRegistry:
    """
    Read-only registry of models keyed by identity.

    Build with :meth:`build`; the constructor expects already-validated
    entries.
    """

    def __init__(self, models: Mapping[str, RegisteredModel]):
        self._models = MappingProxyType(dict(models))

    @classmethod
    def build(
        cls,
        models: Iterable[ModelDefinition],
        datastores: Iterable[Datastore],
    ) -> ModelRegistry:
        """Validate *models* and *datastores* and return a frozen registry."""
        stores: dict[str, Datastore] = {}
        for store in datastores:
            if store.name in stores:
                raise ConfigError(f"Duplicate datastore: {store.name}")
            if store.adapter is None:
                raise ConfigError(f"Datastore `{store.name}` has no adapter")
            stores[store.name] = store

        definitions: dict[str, ModelDefinition] = {}
        for definition in models:
            identity = definition.identity
            if not identity:
                raise ConfigError("Every model needs a non-empty identity")
            if identity in definitions:
                raise ConfigError(f"Duplicate model identity: {identity}")
            definitions[identity] = _normalize(definition)

        for definition in definitions.values():
            _validate(definition, definitions, stores)

        return cls(
            {
                identity: RegisteredModel(
                    definition=definition,
                    transformer=Transformer(definition),
                    datastore=stores[definition.datastore],
                )
                for identity, definition in definitions.items()
            }
        )

    def get(self, identity: str) -> RegisteredModel:
        try:
            return self._models[identity]
        except KeyError:
            raise ConfigError(f"Unknown model: {identity}") from None

    def __contains__(self, identity: object) -> bool:
        return identity in self._models

    def list_models(self) -> list[str]:
        """List registered model identities."""
        return sorted(self._models.keys())


def _normalize(definition: ModelDefinition) -> ModelDefinition:
    """Freeze mappings and coerce hook keys to their string names."""
    hooks: dict[str, Any] = {}
    for name, fn in definition.hooks.items():
        try:
            key = LifecycleHook(name).value
        except ValueError:
            raise ConfigError(
                f"Model `{definition.identity}` registers unknown lifecycle hook `{name}`"
            ) from None
        if not callable(fn):
            raise ConfigError(
                f"Lifecycle hook `{key}` of model `{definition.identity}` is not callable"
            )
        hooks[key] = fn
    return replace(
        definition,
        attributes=MappingProxyType(dict(definition.attributes)),
        hooks=MappingProxyType(hooks),
    )


def _validate(
    definition: ModelDefinition,
    definitions: Mapping[str, ModelDefinition],
    stores: Mapping[str, Datastore],
) -> None:
    identity = definition.identity

    if definition.datastore not in stores:
        raise ConfigError(
            f"Model `{identity}` is bound to unknown datastore `{definition.datastore}`"
        )

    pk = definition.attribute(definition.primary_key)
    if pk is None:
        raise ConfigError(
            f"Model `{identity}` declares primary key `{definition.primary_key}` "
            "but has no such attribute"
        )
    if pk.is_association or pk.logical_type not in (AttributeType.NUMBER, AttributeType.STRING):
        raise ConfigError(f"Primary key of model `{identity}` must be a number or string")

    columns: dict[str, str] = {}
    for name, attr in definition.attributes.items():
        try:
            attr.logical_type
        except ValueError:
            raise ConfigError(
                f"Attribute `{identity}.{name}` has unknown type `{attr.type}`"
            ) from None

        if attr.model is not None and attr.collection is not None:
            raise ConfigError(
                f"Attribute `{identity}.{name}` cannot be both `model` and `collection`"
            )
        if attr.model is not None and attr.model not in definitions:
            raise ConfigError(
                f"Attribute `{identity}.{name}` references unknown model `{attr.model}`"
            )
        if attr.collection is not None:
            _validate_collection(identity, name, attr.collection, attr.via, definitions)
            continue

        column = attr.column_name or name
        if column in columns:
            raise ConfigError(
                f"Attributes `{columns[column]}` and `{name}` of model `{identity}` "
                f"share column `{column}`"
            )
        columns[column] = name


def _validate_collection(
    identity: str,
    name: str,
    collection: str,
    via: str | None,
    definitions: Mapping[str, ModelDefinition],
) -> None:
    child = definitions.get(collection)
    if child is None:
        raise ConfigError(
            f"Attribute `{identity}.{name}` references unknown model `{collection}`"
        )
    if via is None:
        raise ConfigError(f"Collection attribute `{identity}.{name}` needs `via`")
    back = child.attribute(via)
    if back is None or back.model != identity:
        raise ConfigError(
            f"Collection attribute `{identity}.{name}` uses `via: {via}`, but "
            f"`{collection}.{via}` is not a `model` association back to `{identity}`"
        )


__all__ = ["Datastore", "RegisteredModel", "ModelRegistry"]
