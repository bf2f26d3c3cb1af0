"""Centralized configuration for trigram-search using Pydantic Settings."""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every variable is read with the ``TRIGRAM_SEARCH_`` prefix, e.g.
    ``TRIGRAM_SEARCH_BATCH_SIZE=250``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIGRAM_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Storage
    db_path: str = Field(default=":memory:", description="SQLite database holding trigram rows")
    trigram_table: str = Field(default="trigrams", min_length=1, description="Default trigram table name")
    busy_timeout_ms: int = Field(default=30000, ge=0, description="SQLite busy timeout in milliseconds")

    # Query defaults applied to newly registered fields
    default_limit: int = Field(default=10, ge=1, description="Default number of fuzzy matches returned")
    default_offset: int = Field(default=0, ge=0, description="Default number of leading trigram matches skipped")

    # Bulk reindex
    batch_size: int = Field(default=100, ge=1, description="Owners reindexed per transaction")
    multi_row_insert: Literal["auto", "always", "never"] = Field(
        default="auto",
        description="Multi-row INSERT usage: check the store (auto), force it (always) or disable it (never)",
    )
    min_multi_row_sqlite_version: str = Field(
        default="3.7.11",
        description="Oldest SQLite library version accepting multi-row VALUES lists",
    )

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    @field_validator("min_multi_row_sqlite_version")
    @classmethod
    def _check_version(cls, value: str) -> str:
        parts = value.strip().split(".")
        if not parts or not all(part.isdigit() for part in parts):
            raise ValueError(f"Invalid SQLite version '{value}'; expected dotted digits such as 3.7.11")
        return value.strip()

    def get_min_multi_row_sqlite_version(self) -> tuple[int, ...]:
        """Get the multi-row insert threshold as a comparable version tuple."""
        return tuple(int(part) for part in self.min_multi_row_sqlite_version.split("."))
