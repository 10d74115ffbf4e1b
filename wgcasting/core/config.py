"""Configuration management for the WG Casting backend."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BackupStrategy = Literal["local", "drive", "both"]


class Settings(BaseSettings):
    """Environment-backed settings shared by the API and the backup worker."""

    app_name: str = Field(default="WG Casting API", alias="APP_NAME")
    version: str = Field(default="0.1.0", alias="VERSION")
    docs_url: str | None = Field(default="/docs")
    redoc_url: str | None = Field(default="/redoc")
    openapi_url: str = Field(default="/openapi.json")

    # Remote document store
    jsonbin_api_key: str | None = Field(default=None, alias="JSONBIN_API_KEY")
    jsonbin_bin_id: str | None = Field(default=None, alias="JSONBIN_BIN_ID")
    jsonbin_votes_bin_id: str | None = Field(default=None, alias="JSONBIN_VOTES_BIN_ID")
    jsonbin_base_url: str = Field(default="https://api.jsonbin.io/v3", alias="JSONBIN_BASE_URL")
    jsonbin_timeout_seconds: float = Field(default=10.0, alias="JSONBIN_TIMEOUT_SECONDS")
    jsonbin_auto_create: bool = Field(
        default=True,
        description="Create a bin with default content when the configured id returns 404.",
        alias="JSONBIN_AUTO_CREATE",
    )
    store_min_interval_seconds: float = Field(default=1.0, alias="STORE_MIN_INTERVAL_SECONDS")
    store_max_attempts: int = Field(default=3, ge=1, alias="STORE_MAX_ATTEMPTS")
    cache_freshness_seconds: float = Field(default=10.0, alias="CACHE_FRESHNESS_SECONDS")

    # Backups
    backup_strategy: BackupStrategy = Field(default="both", alias="BACKUP_STRATEGY")
    backup_dry_run: bool = Field(default=False, alias="BACKUP_DRY_RUN")
    backup_dir: Path = Field(default=Path("backups"), alias="BACKUP_DIR")
    backup_interval_hours: int = Field(default=6, ge=1, le=24, alias="BACKUP_INTERVAL_HOURS")
    backup_catchup_grace_minutes: int = Field(default=15, ge=0, alias="BACKUP_CATCHUP_GRACE_MINUTES")
    backup_lock_stale_minutes: int = Field(default=60, ge=1, alias="BACKUP_LOCK_STALE_MINUTES")
    backup_timezone: str | None = Field(
        default=None,
        description="IANA zone for the backup slots, e.g. Europe/Berlin. Defaults to system local time.",
        alias="BACKUP_TIMEZONE",
    )
    backup_schedule_enabled: bool = Field(
        default=False,
        description="Run the backup schedule inside the API process.",
        alias="BACKUP_SCHEDULE_ENABLED",
    )

    # Cloud copy of backups (S3-compatible object storage)
    backup_s3_bucket: str | None = Field(default=None, alias="BACKUP_S3_BUCKET")
    backup_s3_folder: str = Field(default="wg-casting/backups", alias="BACKUP_S3_FOLDER")
    aws_region: str = Field(default="us-east-1", alias="AWS_REGION")
    aws_access_key_id: str | None = Field(default=None, alias="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(default=None, alias="AWS_SECRET_ACCESS_KEY")
    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")

    # Observability
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    enable_metrics: bool = Field(default=True, alias="ENABLE_METRICS")
    enable_tracing: bool = Field(default=False, alias="ENABLE_TRACING")
    otel_exporter_endpoint: str | None = Field(default=None, alias="OTEL_EXPORTER_ENDPOINT")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("backup_strategy", mode="before")
    @classmethod
    def _lowercase_strategy(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator(
        "jsonbin_api_key",
        "jsonbin_bin_id",
        "jsonbin_votes_bin_id",
        "backup_s3_bucket",
        "backup_timezone",
        mode="before",
    )
    @classmethod
    def _blank_as_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def backup_to_local(self) -> bool:
        return self.backup_strategy in ("local", "both")

    @property
    def backup_to_drive(self) -> bool:
        return self.backup_strategy in ("drive", "both")

    @property
    def backup_state_file(self) -> Path:
        return self.backup_dir / "backup-state.json"

    @property
    def backup_lock_file(self) -> Path:
        return self.backup_dir / "backup.lock"


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()


__all__ = ["BackupStrategy", "Settings", "get_settings"]
