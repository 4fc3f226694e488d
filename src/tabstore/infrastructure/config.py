"""Configuration management for the table store."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseModel):
    """Storage configuration."""

    data_dir: Path = Field(default=Path("./data"), description="Root storage directory")
    sync_mode: Literal["fsync", "none"] = Field(
        default="fsync", description="Whether appends are fsynced before acknowledging"
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, ge=0, le=65535, description="Server port")
    idle_timeout_seconds: float | None = Field(
        default=None, gt=0, description="Close connections idle for this long (None = never)"
    )


class QueryConfig(BaseModel):
    """Command interpreter configuration."""

    strict_columns: bool = Field(
        default=False,
        description="Fail SELECT on unknown projected columns instead of dropping them",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    log_file: Path | None = Field(
        default=None, description="Append logs to this file instead of stdout"
    )
    metrics_port: int | None = Field(
        default=None, ge=1, le=65535, description="Prometheus metrics port (None = disabled)"
    )
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="tabstore", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the table store."""

    model_config = SettingsConfigDict(
        env_prefix="TABSTORE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    query: QueryConfig = Field(default_factory=QueryConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the storage root exists."""
        self.storage.data_dir.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    config = Config()
    config.ensure_directories()
    return config
