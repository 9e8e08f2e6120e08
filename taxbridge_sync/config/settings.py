"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """On-device storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "taxbridge.db"

    # SQLite settings
    pool_size: int = 2
    busy_timeout: int = 30000  # ms
    max_page_count: int | None = None  # quota in pages, None = unbounded

    # Pressure relief
    retention_days: int = 30
    soft_cap: int = 150
    emergency_keep_synced: int = 50

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class NetworkSettings(BaseSettings):
    """Reachability probe configuration."""

    model_config = SettingsConfigDict(env_prefix="NETWORK_")

    probe_url: str = "https://clients3.google.com/generate_204"
    probe_timeout: float = 3.0  # seconds
    probe_interval: float = 15.0  # seconds


class RemoteSettings(BaseSettings):
    """Remote invoice API configuration."""

    model_config = SettingsConfigDict(env_prefix="REMOTE_")

    base_url: str = "https://api.taxbridge.ng"
    api_prefix: str = "/api/v1"
    timeout: float = 15.0


class SyncSettings(BaseSettings):
    """Retry and scheduling policy for invoice sync."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    max_attempts: int = 5
    backoff_base_seconds: float = 1.0
    backoff_cap_seconds: float = 300.0  # 5 minutes
    backoff_jitter_seconds: float = 1.0

    # Auto-sync
    require_credentials: bool = False
    periodic_interval_seconds: float = 0.0  # 0 disables the periodic pass


class APISettings(BaseSettings):
    """Local API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "127.0.0.1"
    port: int = 8765
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "TaxBridge Offline Sync"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        if isinstance(v, dict):
            settings = StorageSettings(**v)
        else:
            settings = v or StorageSettings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
