"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the service and the state manager."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="Kitchen Command Record Store",
        description="Human friendly name for the API.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./kitchen_command.db",
        description="SQLAlchemy compatible database URL.",
    )
    echo_sql: bool = Field(
        default=False,
        description="Enable SQL echo logging for debugging.",
    )
    log_level: str = Field(default="INFO", description="Root logging level.")

    record_store_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL of the record store consumed by the client.",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds before a record store call is reported as timed out.",
    )
    snapshot_path: str = Field(
        default="kitchen-command-products.json",
        description="File holding the local product snapshot.",
    )
    sync_max_attempts: int = Field(default=3, ge=1)
    sync_base_delay: float = Field(default=0.5, ge=0)
    sync_max_delay: float = Field(default=10.0, ge=0)
    low_stock_threshold: int = Field(default=10, ge=0)

    report_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the text-generation API used for sales reports.",
    )
    report_api_key: str = Field(default="", description="API key for report generation.")
    report_model: str = Field(default="gemini-2.0-flash")

    @field_validator("database_url")
    @classmethod
    def _validate_sqlite_path(cls, value: str) -> str:
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError(
                "SQLite database URLs should be in the form sqlite+aiosqlite:///path/to/db"
            )
        return value

    @field_validator("record_store_url", "report_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
