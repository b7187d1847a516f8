"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the stock take tool."""

    model_config = SettingsConfigDict(
        env_prefix="STOCKTAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(
        default="Stock Take Pro",
        description="Human friendly name shown by the command line.",
    )
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    storage_backend: Literal["json", "sqlite", "memory"] = Field(
        default="json",
        description="Blob store used to persist the inventory.",
    )
    storage_path: Path = Field(
        default=Path("stocktake_data.json"),
        description="JSON document used by the json storage backend.",
    )
    database_url: str = Field(
        default="sqlite:///./stocktake.db",
        description="SQLAlchemy compatible database URL for the sqlite backend.",
    )
    echo_sql: bool = Field(
        default=False,
        description="Enable SQL echo logging for debugging.",
    )
    log_level: str = Field(
        default="WARNING",
        description="Root logging level configured by the command line.",
    )

    @field_validator("database_url")
    @classmethod
    def _validate_sqlite_path(cls, value: str) -> str:
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError("SQLite database URLs should be in the form sqlite:///path/to/db")
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level '{value}'")
        return normalized


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
