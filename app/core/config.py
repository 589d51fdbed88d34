"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the scripts, and the
tests share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

import os

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the process env."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class GeminiSettings(BaseSettings):
    """Configuration for Gemini model access."""

    api_key: str = Field(..., validation_alias="GEMINI_API_KEY")
    model_name: str = Field("gemini-1.5-pro", validation_alias="GEMINI_MODEL_NAME")
    temperature: float = Field(0.7, validation_alias="GEMINI_TEMPERATURE")


class StripeSettings(BaseSettings):
    """Payment provider configuration, checked when first used."""

    secret_key: Optional[str] = Field(None, validation_alias="STRIPE_SECRET_KEY")
    webhook_secret: Optional[str] = Field(
        None,
        validation_alias="STRIPE_WEBHOOK_SECRET",
        description="Signing secret used to verify webhook payloads.",
    )
    price_id: Optional[str] = Field(
        None,
        validation_alias="STRIPE_PRICE_ID",
        description="Recurring price the checkout session subscribes to.",
    )


class AWSSettings(BaseSettings):
    """Settings for the optional DynamoDB storage backend."""

    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )


class StorageSettings(BaseSettings):
    """Configuration for fetching data bundles."""

    bundle_fetch_timeout: float = Field(
        30.0,
        validation_alias="BUNDLE_FETCH_TIMEOUT",
        description="Seconds to wait on a single http(s) bundle download.",
    )
    gcs_project: Optional[str] = Field(None, validation_alias="GCS_PROJECT")


class DocumentStoreSettings(BaseSettings):
    """Just enough configuration to open the document store.

    Offline tools such as the catalog seeder use this instead of
    ``AppSettings`` so they run without model or payment credentials.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    storage_backend: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", validation_alias="STORAGE_BACKEND"
    )
    db_path: str = Field(
        "data/profitscout.db", validation_alias="PROFITSCOUT_DB_PATH"
    )
    aws: AWSSettings = Field(default_factory=AWSSettings)


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description="Fallback origin for checkout redirect URLs.",
    )
    free_analysis_quota: int = Field(5, validation_alias="FREE_ANALYSIS_QUOTA")
    storage_backend: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", validation_alias="STORAGE_BACKEND"
    )
    db_path: str = Field(
        "data/profitscout.db", validation_alias="PROFITSCOUT_DB_PATH"
    )
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    stripe: StripeSettings = Field(default_factory=StripeSettings)
    aws: AWSSettings = Field(default_factory=AWSSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @field_validator("free_analysis_quota")
    @classmethod
    def _quota_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("FREE_ANALYSIS_QUOTA must be zero or greater.")
        return value


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "AWSSettings",
    "DocumentStoreSettings",
    "GeminiSettings",
    "StorageSettings",
    "StripeSettings",
    "get_settings",
]
