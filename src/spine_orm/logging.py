"""
Structured logging for spine-orm.

Manifesto:
    The query core runs inside someone else's service, so it never decides
    where logs go. It emits structured events through structlog
    (``query_dispatched``, ``query_completed``, ``adapter_unexpected_result``,
    ...) and leaves rendering to whoever calls :func:`configure_logging`.
    Operation fields (model, method, datastore, request id) are scoped with
    :class:`LogContext` so every event of one call can be correlated.

Architecture:
    ::

        configure_logging(level="INFO", json_format=True, service="spine-orm")
            ↓
        structlog processor chain:
          1. TimeStamper (iso)
          2. merge_contextvars         (LogContext fields)
          3. add_log_level / add_logger_name
          4. _ServiceStamp             (service.name)
          5. _ecs_fields (JSON only)   (@timestamp, log.level, orm.*)
          6. JSONRenderer or ConsoleRenderer

Examples:
    >>> from spine_orm.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", json_format=False)
    >>> logger = get_logger(__name__)
    >>> logger.warning("adapter_unexpected_result", datastore="default")

Tags:
    logging, structlog, observability, spine-orm

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from contextvars import Token
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Operation fields moved under the ``orm.`` namespace in JSON output.
_ORM_FIELDS = ("model", "method", "datastore", "records", "elapsed_ms")


class _ServiceStamp:
    """Processor stamping ``service.name`` on every event."""

    def __init__(self, service: str):
        self.service = service

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.service)
        return event_dict


def _ecs_fields(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Rename fields to their ECS names and namespace the operation fields."""
    if "timestamp" in event_dict:
        event_dict["@timestamp"] = event_dict.pop("timestamp")
    if "level" in event_dict:
        event_dict["log.level"] = event_dict.pop("level")
    for name in _ORM_FIELDS:
        if name in event_dict:
            event_dict[f"orm.{name}"] = event_dict.pop(name)
    if "request_id" in event_dict:
        event_dict["trace.id"] = event_dict.pop("request_id")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service: str = "spine-orm",
    add_timestamp: bool = True,
) -> None:
    """Install the spine-orm processor chain.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (case-insensitive)
        json_format: JSON lines with ECS field names, or a colored console
        service: Value of ``service.name`` on every event
        add_timestamp: Prepend an ISO timestamp

    Raises:
        ValueError: For an unknown level name.
    """
    try:
        numeric_level = _LEVELS[level.upper()]
    except KeyError:
        raise ValueError(f"Unknown log level: {level!r}") from None

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _ServiceStamp(service),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso"))

    if json_format:
        processors += [_ecs_fields, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**fields: Any) -> Mapping[str, Token[Any]]:
    """Bind *fields* to every following event; returns tokens for :func:`reset_context`."""
    return structlog.contextvars.bind_contextvars(**fields)


def reset_context(tokens: Mapping[str, Token[Any]]) -> None:
    """Restore the fields bound by :func:`bind_context` to their previous values."""
    structlog.contextvars.reset_contextvars(**tokens)


class LogContext:
    """Scoped logging fields, usable with ``with`` and ``async with``.

    Leaving the block restores whatever the fields were bound to before,
    so nested operations (populates) keep the outer request id.

    Example:
        async with LogContext(model="user", request_id=ctx.request_id):
            logger.debug("query_dispatched")
    """

    def __init__(self, **fields: Any):
        self._fields = fields
        self._tokens: Mapping[str, Token[Any]] = {}

    def __enter__(self) -> LogContext:
        self._tokens = bind_context(**self._fields)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        reset_context(self._tokens)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "reset_context",
    "LogContext",
]
