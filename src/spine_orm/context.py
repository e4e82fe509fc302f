"""
Per-call context for query operations.

Every operation function receives an :class:`OperationContext` as its first
argument. It carries the read-only model registry, the identity of the
model being queried, and the omen captured at the public entry point.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from spine_orm.omen import Omen
from spine_orm.schema import ModelRegistry, RegisteredModel


@dataclass(frozen=True)
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        registry: Read-only model registry built at initialization.
        identity: Identity of the model being queried.
        omen: Caller's stack at the public entry point.
        request_id: Unique ID for this invocation (auto-generated).
    """

    registry: ModelRegistry
    identity: str
    omen: Omen
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])

    @property
    def model(self) -> RegisteredModel:
        return self.registry.get(self.identity)

    def for_model(self, identity: str) -> OperationContext:
        """Context for a nested query on another model (populates)."""
        return OperationContext(
            registry=self.registry,
            identity=identity,
            omen=self.omen,
            request_id=self.request_id,
        )


__all__ = ["OperationContext"]
