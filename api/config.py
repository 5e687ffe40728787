"""
API Configuration using Pydantic Settings.

Provides centralized configuration management with environment variable loading,
validation, and sensible defaults for development and production environments.

The bootstrap reads a frozen Environment snapshot derived from these settings
once at startup; nothing downstream reads the process environment directly.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.bootstrap.environment import DeploymentMode, Environment


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Preflight", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    deployment_mode: DeploymentMode = Field(
        default=DeploymentMode.DEVELOPMENT,
        description="Deployment mode: 'production', anything else is development",
    )
    debug: bool = Field(default=False, description="Debug mode")
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    # API Server
    host: str = Field(default="0.0.0.0", description="API server host")
    port: int = Field(default=8000, description="API server port")

    # Database
    resource_uri: Optional[str] = Field(
        default=None, description="Database connection string"
    )
    degraded_mode: bool = Field(
        default=False, description="Opt in to running without the database"
    )
    connect_timeout: float = Field(
        default=5.0, gt=0, description="Connection probe timeout in seconds"
    )

    # Browser binary
    binary_cache_dir: Path = Field(
        default=Path("./.cache/browser"), description="Browser download cache directory"
    )
    binary_executable_path_override: Optional[str] = Field(
        default=None, description="Explicit browser executable, used instead of the resolved one"
    )
    binary_revision: str = Field(
        default="1134945", description="Pinned browser revision for the fetch tier"
    )
    binary_platform: str = Field(
        default="linux", description="Platform of the downloaded browser build"
    )

    @field_validator("deployment_mode", mode="before")
    @classmethod
    def parse_deployment_mode(cls, v: Any) -> DeploymentMode:
        """Only the literal 'production' selects production mode."""
        if isinstance(v, DeploymentMode):
            return v
        return DeploymentMode.from_value(v if isinstance(v, str) else None)

    @field_validator("degraded_mode", mode="before")
    @classmethod
    def parse_degraded_mode(cls, v: Any) -> bool:
        """Only the literal 'true' enables degraded mode."""
        if isinstance(v, str):
            return v.strip().lower() == "true"
        return bool(v)

    @field_validator("resource_uri", "binary_executable_path_override", mode="before")
    @classmethod
    def empty_as_none(cls, v: Any) -> Optional[str]:
        """Treat empty environment variables as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def configure_environment_defaults(self) -> "Settings":
        """Set environment-specific defaults."""
        if self.deployment_mode == DeploymentMode.DEVELOPMENT:
            if not self.debug:
                object.__setattr__(self, "debug", True)
        elif self.deployment_mode == DeploymentMode.PRODUCTION:
            if self.debug:
                object.__setattr__(self, "debug", False)
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.deployment_mode == DeploymentMode.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.deployment_mode == DeploymentMode.PRODUCTION

    def to_environment(self) -> Environment:
        """
        Take the immutable snapshot the bootstrap resolvers run against.

        Returns:
            Environment built from the current settings
        """
        return Environment(
            deployment_mode=self.deployment_mode,
            resource_uri=self.resource_uri,
            explicit_degraded_mode_flag=self.degraded_mode,
            cache_directory=self.binary_cache_dir,
            binary_revision=self.binary_revision,
            binary_platform=self.binary_platform,
            connect_timeout=self.connect_timeout,
            binary_executable_path_override=self.binary_executable_path_override,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.

    Returns:
        Settings instance with loaded configuration.
    """
    return Settings()


def get_settings_uncached() -> Settings:
    """
    Get fresh settings instance (useful for testing).

    Returns:
        New Settings instance with loaded configuration.
    """
    return Settings()
