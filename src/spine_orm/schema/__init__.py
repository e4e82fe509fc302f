"""Model schema: attribute declarations, model definitions, registry.

Modules
-------
attributes      AttributeType enum, AttributeDef, value type checks
model           ModelDefinition, LifecycleHook names
transformer     Attribute <-> column name mapping
registry        ModelRegistry (read-only after build), Datastore binding
"""

from .attributes import AttributeDef, AttributeType, check_value
from .model import LifecycleHook, ModelDefinition
from .registry import Datastore, ModelRegistry, RegisteredModel
from .transformer import Transformer

__all__ = [
    "AttributeDef",
    "AttributeType",
    "check_value",
    "LifecycleHook",
    "ModelDefinition",
    "Datastore",
    "ModelRegistry",
    "RegisteredModel",
    "Transformer",
]
