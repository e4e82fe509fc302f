"""
spine-orm: the query-execution core of an object-relational mapping layer.

A logical, datastore-agnostic query is compiled in stages (raw ->
stage-2 logical -> stage-3 physical), handed to a pluggable storage
adapter, and the adapter's answer is validated and translated back into
the caller's vocabulary.

Packages
--------
schema          Attribute/model definitions, registry, transformers
query           Query descriptors and the stage-2 / stage-3 compilers
adapters        Adapter contract and the dispatcher that enforces it
methods         Operation functions (create, update, find, stream, ...)

Modules
-------
orm             Orm.initialize(), ModelHandle
errors          SpineOrmError hierarchy and error codes
lifecycle       Before/after lifecycle hook runner
records         Result materialization and schema verification
omen            Call-site capture for deep-async errors
settings        OrmSettings (pydantic-settings)
logging         structlog configuration
"""

from spine_orm.errors import (
    AdapterContractError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    RecordVerificationError,
    SpineOrmError,
    StageThreeError,
    UniquenessError,
    UnsupportedOperationError,
    UsageError,
)
from spine_orm.methods import BATCH_SIZE, StreamSignal
from spine_orm.orm import ModelHandle, Orm
from spine_orm.schema import (
    AttributeDef,
    AttributeType,
    Datastore,
    LifecycleHook,
    ModelDefinition,
    ModelRegistry,
)
from spine_orm.settings import OrmSettings

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # entry point
    "Orm",
    "ModelHandle",
    "OrmSettings",
    # schema
    "AttributeDef",
    "AttributeType",
    "Datastore",
    "LifecycleHook",
    "ModelDefinition",
    "ModelRegistry",
    # streaming
    "BATCH_SIZE",
    "StreamSignal",
    # errors
    "SpineOrmError",
    "ErrorCategory",
    "ErrorContext",
    "UsageError",
    "ConfigError",
    "UnsupportedOperationError",
    "StageThreeError",
    "AdapterContractError",
    "UniquenessError",
    "RecordVerificationError",
]
