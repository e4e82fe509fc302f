"""
Public entry point: ``Orm`` and per-model ``ModelHandle``.

Manifesto:
    Initialization is a one-time phase. ``Orm.initialize()`` validates the
    model definitions, binds every model to its datastore's adapter and
    returns a handle that owns the read-only registry. Nothing is looked
    up from module globals afterwards: every call gets an explicit
    :class:`~spine_orm.context.OperationContext`.

    Each public method takes one structured set of keyword arguments; the
    omen (the caller's call site) is captured before the first ``await``.

Examples:
    >>> orm = Orm.initialize(
    ...     models=[ModelDefinition("user", {"id": AttributeDef("number"),
    ...                                      "name": AttributeDef("string")})],
    ...     datastores=[Datastore("default", MyAdapter())],
    ... )
    >>> users = orm.model("user")
    >>> await users.update({"name": "a"}, {"name": "b"}, meta={"fetch": True})
    [{'id': 1, 'name': 'b'}]

Tags:
    spine-orm, entry-point, facade

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Iterable, Mapping, Sequence
from typing import Any

from spine_orm import methods
from spine_orm.context import OperationContext
from spine_orm.logging import LogContext, get_logger
from spine_orm.omen import Omen
from spine_orm.schema import Datastore, ModelDefinition, ModelRegistry
from spine_orm.settings import OrmSettings, configure_logging_from_settings

logger = get_logger(__name__)


class ModelHandle:
    """Query methods for one registered model."""

    def __init__(self, registry: ModelRegistry, identity: str):
        self._registry = registry
        self.identity = identity

    def __repr__(self) -> str:
        return f"ModelHandle({self.identity!r})"

    def _context(self) -> OperationContext:
        return OperationContext(
            registry=self._registry, identity=self.identity, omen=Omen.capture()
        )

    async def _run(self, ctx: OperationContext, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        async with LogContext(model=self.identity, request_id=ctx.request_id):
            return await fn(ctx, *args, **kwargs)

    # -- mutations ---------------------------------------------------------

    async def create(
        self, values: Mapping[str, Any], *, meta: Any = None
    ) -> list[dict[str, Any]] | None:
        ctx = self._context()
        return await self._run(ctx, methods.create, values, meta=meta)

    async def create_each(
        self, records: Sequence[Mapping[str, Any]], *, meta: Any = None
    ) -> list[dict[str, Any]] | None:
        ctx = self._context()
        return await self._run(ctx, methods.create_each, records, meta=meta)

    async def update(
        self, criteria: Any, values: Mapping[str, Any], *, meta: Any = None
    ) -> list[dict[str, Any]] | None:
        ctx = self._context()
        return await self._run(ctx, methods.update, criteria, values, meta=meta)

    async def destroy(self, criteria: Any, *, meta: Any = None) -> list[dict[str, Any]] | None:
        ctx = self._context()
        return await self._run(ctx, methods.destroy, criteria, meta=meta)

    # -- reads -------------------------------------------------------------

    async def find(
        self, criteria: Any = None, *, populates: Any = None, meta: Any = None
    ) -> list[dict[str, Any]]:
        ctx = self._context()
        return await self._run(ctx, methods.find, criteria, populates=populates, meta=meta)

    async def find_one(
        self, criteria: Any = None, *, populates: Any = None, meta: Any = None
    ) -> dict[str, Any] | None:
        ctx = self._context()
        return await self._run(ctx, methods.find_one, criteria, populates=populates, meta=meta)

    async def count(self, criteria: Any = None, *, meta: Any = None) -> int:
        ctx = self._context()
        return await self._run(ctx, methods.count, criteria, meta=meta)

    async def sum(
        self, numeric_attr_name: str, criteria: Any = None, *, meta: Any = None
    ) -> int | float:
        ctx = self._context()
        return await self._run(ctx, methods.sum, numeric_attr_name, criteria, meta=meta)

    async def avg(
        self, numeric_attr_name: str, criteria: Any = None, *, meta: Any = None
    ) -> int | float:
        ctx = self._context()
        return await self._run(ctx, methods.avg, numeric_attr_name, criteria, meta=meta)

    async def stream(
        self,
        criteria: Any = None,
        *,
        each_record: Callable[[dict[str, Any]], Any] | None = None,
        each_batch: Callable[[list[dict[str, Any]]], Any] | None = None,
        populates: Any = None,
        meta: Any = None,
    ) -> None:
        ctx = self._context()
        return await self._run(
            ctx,
            methods.stream,
            criteria,
            each_record=each_record,
            each_batch=each_batch,
            populates=populates,
            meta=meta,
        )

    def iterate(
        self, criteria: Any = None, *, populates: Any = None, meta: Any = None
    ) -> AsyncIterator[dict[str, Any]]:
        """``async for record in users.iterate(...)``."""
        return methods.iterate(self._context(), criteria, populates=populates, meta=meta)


class Orm:
    """An initialized ORM: the model registry plus a handle per model."""

    def __init__(self, registry: ModelRegistry, settings: OrmSettings | None = None):
        self.registry = registry
        self.settings = settings
        self._handles = {identity: ModelHandle(registry, identity) for identity in registry.list_models()}

    @classmethod
    def initialize(
        cls,
        models: Iterable[ModelDefinition],
        datastores: Iterable[Datastore],
        *,
        settings: OrmSettings | None = None,
        configure_logging: bool = False,
    ) -> Orm:
        """Validate *models*, bind them to *datastores*, return the ORM.

        With ``configure_logging=True`` the logging stack is configured
        from *settings* (or from ``SPINE_ORM_*`` environment variables).
        Raises :class:`~spine_orm.errors.ConfigError` on invalid models.
        """
        if configure_logging:
            settings = configure_logging_from_settings(settings)
        registry = ModelRegistry.build(models, datastores)
        logger.info(
            "orm_initialized",
            models=registry.list_models(),
            datastores=sorted({registry.get(i).datastore.name for i in registry.list_models()}),
        )
        return cls(registry, settings)

    def model(self, identity: str) -> ModelHandle:
        """Handle for the model registered as *identity*."""
        if identity not in self._handles:
            # Raises ConfigError with the list of known models.
            self.registry.get(identity)
        return self._handles[identity]

    def __getitem__(self, identity: str) -> ModelHandle:
        return self.model(identity)


__all__ = ["Orm", "ModelHandle"]
