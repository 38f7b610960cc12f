"""Application configuration objects."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings used to configure the sync engine and the row store."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(
        default="Inventory Sync Service",
        description="Human friendly name for the row store API.",
    )
    environment: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Deployment environment flag used for logging.",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./inventory.db",
        description="SQLAlchemy compatible database URL backing the row store.",
    )
    echo_sql: bool = Field(
        default=False,
        description="Enable SQL echo logging for debugging.",
    )
    cache_dir: Path = Field(
        default=Path("./.inventory_cache"),
        description="Directory holding the on-device snapshot cache.",
    )
    typing_debounce_ms: int = Field(
        default=250,
        ge=0,
        description="Debounce for continuous-typing edits (quantity, location, SKU, title).",
    )
    change_debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Debounce for general edits such as image or custom values.",
    )
    enforce_unique_sku: bool = Field(
        default=False,
        description="Reject edits and imports that give two items the same SKU.",
    )
    quote_exported_fields: bool = Field(
        default=False,
        description="Wrap exported fields containing the delimiter in double quotes.",
    )
    low_stock_threshold: int = Field(
        default=10,
        ge=1,
        description="Variants with 0 < quantity < threshold count as low stock.",
    )
    remote_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the row store API used by the HTTP client.",
    )
    remote_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout in seconds for row store HTTP calls.",
    )
    log_level: str = Field(default="INFO")
    log_file: Path | None = Field(
        default=None,
        description="Optional rotating log file; console only when unset.",
    )

    @field_validator("database_url")
    @classmethod
    def _validate_sqlite_path(cls, value: str) -> str:
        if value.startswith("sqlite") and ":memory:" not in value and "///" not in value:
            raise ValueError(
                "SQLite database URLs should be in the form sqlite+aiosqlite:///path/to/db"
            )
        return value

    @property
    def typing_debounce(self) -> float:
        return self.typing_debounce_ms / 1000

    @property
    def change_debounce(self) -> float:
        return self.change_debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of :class:`Settings`."""

    return Settings()


__all__ = ["Settings", "get_settings"]
