"""Configuration models and YAML loader for the listing cache engine."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from jobcache.core.errors import ConfigurationError

APP_ID_ENV = "ADZUNA_APP_ID"
APP_KEY_ENV = "ADZUNA_API_KEY"
BASE_URL_ENV = "ADZUNA_BASE_URL"


class ProviderCredentials(BaseModel):
    """Resolved credentials for the outbound provider call."""

    app_id: str
    app_key: str
    base_url: str


class ProviderConfig(BaseModel):
    """Job-search provider settings.

    Credentials may be left out of the YAML file and supplied through the
    environment. They are only resolved when a live search needs them.
    """

    name: str = "adzuna"
    app_id: str | None = None
    app_key: str | None = None
    base_url: str | None = None
    results_per_page: int = Field(default=10, ge=1, le=50)
    timeout_seconds: float = Field(default=30.0, gt=0)
    default_region: str = "us"

    @field_validator("default_region")
    @classmethod
    def region_lowercase(cls, v: str) -> str:
        if not v.strip():
            msg = "default_region must not be empty"
            raise ValueError(msg)
        return v.strip().lower()

    def credentials(self) -> ProviderCredentials:
        """Return credentials from config, falling back to environment variables.

        Raises:
            ConfigurationError: If any of app id, app key or base URL is missing.
        """
        app_id = self.app_id or os.environ.get(APP_ID_ENV)
        app_key = self.app_key or os.environ.get(APP_KEY_ENV)
        base_url = self.base_url or os.environ.get(BASE_URL_ENV)

        missing = [
            name for name, value in (
                (APP_ID_ENV, app_id),
                (APP_KEY_ENV, app_key),
                (BASE_URL_ENV, base_url),
            )
            if not value
        ]
        if missing:
            msg = f"Provider credentials not configured: {', '.join(missing)}"
            raise ConfigurationError(msg)

        return ProviderCredentials(
            app_id=app_id,  # type: ignore[arg-type]
            app_key=app_key,  # type: ignore[arg-type]
            base_url=base_url.rstrip("/"),  # type: ignore[union-attr]
        )

    @property
    def is_configured(self) -> bool:
        try:
            self.credentials()
        except ConfigurationError:
            return False
        return True


class BudgetConfig(BaseModel):
    """Daily outbound request ceiling for the provider."""

    max_requests_per_day: int = Field(default=90, ge=1)


class CacheConfig(BaseModel):
    """Retention and cleanup settings for cached searches and listings."""

    retention_days: int = Field(default=20, ge=1)
    sweep_batch_size: int = Field(default=100, ge=1)


class VerificationConfig(BaseModel):
    """Age gates and timeouts for listing re-verification."""

    basic_after_days: int = Field(default=10, ge=0)
    advanced_after_days: int = Field(default=15, ge=0)
    basic_timeout_seconds: float = Field(default=5.0, gt=0)
    advanced_timeout_seconds: float = Field(default=10.0, gt=0)
    user_agent: str = "Mozilla/5.0 (compatible; jobcache-verifier/0.1)"
    content_default_valid: bool = False


class DatabaseConfig(BaseModel):
    """Database configuration."""

    path: str = "data/jobcache.db"


class Settings(BaseModel):
    """Top-level settings loaded from YAML."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    budget: BudgetConfig = Field(default_factory=BudgetConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Settings":
        """Load settings from a YAML file."""
        path = Path(path)
        if not path.exists():
            msg = f"Config file not found: {path}"
            raise FileNotFoundError(msg)
        raw: dict[str, Any] = yaml.safe_load(path.read_text()) or {}
        return cls.model_validate(raw)
