"""Mini README: Centralised configuration models and helpers for the tracker.

Structure:
    * TrackerSettings - Pydantic model describing runtime configuration.
    * get_settings - cached accessor for environment-aware settings.

Usage:
    Import ``get_settings`` to read environment variables (prefixed with
    ``PEPI_``), choose the service host and port, and tune receipt numbering.
    The configuration is cached so validation happens once per process.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class TrackerSettings(BaseSettings):
    """Runtime configuration for the funds tracker."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    log_level: str = Field(
        "INFO",
        description="Root logging level used by the CLI and web service.",
    )
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the API service to bind to.",
    )
    interface_port: int = Field(
        8000,
        description="Default port the API service exposes.",
        ge=1,
        le=65535,
    )
    currency_code: str = Field(
        "USD",
        description="ISO currency code used when formatting amounts for display.",
        min_length=3,
        max_length=3,
    )
    receipt_code_length: int = Field(
        6,
        description="Number of random characters appended to every receipt number.",
        ge=4,
        le=16,
    )
    receipt_max_attempts: int = Field(
        8,
        description="How many receipt numbers to draw before giving up on a collision streak.",
        ge=1,
    )
    seed_demo_data: bool = Field(
        True,
        description="Populate the in-memory store with demo agents and a book on start-up.",
    )

    model_config = SettingsConfigDict(env_prefix="PEPI_", env_file=".env", case_sensitive=False)

    @field_validator("currency_code", "log_level", mode="before")
    @classmethod
    def _upper_case(cls, value: str) -> str:
        """Normalise codes so environment values are case-insensitive."""

        return str(value).strip().upper()

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value


@lru_cache()
def get_settings() -> TrackerSettings:
    """Return cached settings, ensuring consistent configuration across modules."""

    return TrackerSettings()
