"""
Client configuration.

Values are read from ``FLAGSHIP_*`` environment variables (or a ``.env`` file) through
Pydantic BaseSettings, so a deployment can point the client at another collection or record
without code changes.  Tests and embedding applications usually build ``Settings(...)``
explicitly and hand it to ``FeatureStore.create``.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration parsed from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="FLAGSHIP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    log_level: str = "INFO"

    mongodb_uri: str = Field(default="mongodb://localhost:27017")
    mongodb_db: str = Field(default="flagship")
    table_name: str = Field(default="featureFlagStore", min_length=1)
    record_name: str = Field(default="features", min_length=1)
    region: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FLAGSHIP_REGION", "AWS_REGION"),
    )

    cache_ttl_seconds: float = Field(default=30.0, ge=0)
    load_timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("region")
    @classmethod
    def blank_region_is_unset(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()
