"""Environment-driven settings for spine-orm.

``OrmSettings`` reads ``SPINE_ORM_*`` environment variables (and ``.env``)
through pydantic-settings. The query core itself has almost nothing to
configure -- the stream batch size is fixed -- so the settings cover the
ambient concerns: logging level, format and service name.

Examples:
    >>> settings = OrmSettings(log_level="DEBUG", log_format="console")
    >>> configure_logging_from_settings(settings)

Tags:
    settings, configuration, pydantic, environment, spine-orm
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from spine_orm.logging import configure_logging


class OrmSettings(BaseSettings):
    """spine-orm configuration.

    Fields
    ──────
    log_level    : Structlog log level
    log_format   : ``json`` for aggregation, ``console`` for development
    service_name : ``service.name`` field stamped on every log line
    """

    model_config = SettingsConfigDict(
        env_prefix="SPINE_ORM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    service_name: str = Field(default="spine-orm")

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value!r}")
        return level


def configure_logging_from_settings(settings: OrmSettings | None = None) -> OrmSettings:
    """Apply *settings* (or settings loaded from the environment) to logging."""
    settings = settings or OrmSettings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        service=settings.service_name,
    )
    return settings


__all__ = ["OrmSettings", "configure_logging_from_settings"]
