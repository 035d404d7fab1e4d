"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a default suitable for local
development, so the service starts against an in-memory store with no
configuration at all.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class StoreBackend(str, Enum):
    """Key-value backend holding doctor and consultation records."""

    MEMORY = "memory"
    REDIS = "redis"


class Settings(BaseSettings):
    """
    Central configuration for the telemedicine consultation service.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── Record store ─────────────────────────────────────────────
    store_backend: StoreBackend = Field(default=StoreBackend.MEMORY, description="Record store backend")
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    store_key_prefix: str = Field(default="telemed", min_length=1, description="Namespace for store keys")

    # ── Authorization ────────────────────────────────────────────
    verifier_identities: list[str] = Field(
        default_factory=list,
        description="Identities allowed to verify doctors (JSON list in env)",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Every module that calls ``get_settings()`` gets the same object, so
    env vars are read once per process.
    """
    return Settings()
