"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load from CSR_-prefixed environment variables (12-factor app)
  - Fall back to a .env file at the project root
  - Validate types and constraints at startup

Only the composition root (main / asgi) reads settings; the CSR core is
configured purely through constructor arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Resolve the .env file relative to the project root (two levels above this file).
_ENV_FILE = Path(__file__).parent.parent.parent / ".env"


class AppSettings(BaseSettings):
    """
    Application settings.

    Load order (highest priority first):
      1. Environment variables (CSR_ENVIRONMENT, CSR_PORT, ...)
      2. .env file
      3. Default values

    `environment` decides whether internal error detail may appear in HTTP
    500 bodies: only "development" exposes it.
    """

    model_config = SettingsConfigDict(
        env_prefix="CSR_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: Literal["production", "development"] = Field(default="production")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Comma-separated CORS origins; empty disables CORS",
    )
    max_body_bytes: int = Field(default=500 * 1024, ge=1024)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Reject names the logging module does not know."""
        level = value.strip().upper()
        if not isinstance(logging.getLevelNamesMapping().get(level), int):
            raise ValueError(f"Unknown log level: {value!r}")
        return level

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def is_development(self) -> bool:
        return self.environment == "development"
