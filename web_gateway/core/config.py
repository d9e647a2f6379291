"""
Core configuration module for the Web Gateway.

This module provides centralized configuration management using Pydantic Settings.
Settings are read once at process start and are immutable afterwards.

Sources, highest precedence first:
- Constructor arguments (tests, embedding)
- Environment variables with the WEB_GATEWAY_ prefix (nested with "__",
  e.g. WEB_GATEWAY_SERVER__NAME, WEB_GATEWAY_DATABASE__PASSWORD)
- The JSON settings file (server-settings.json, or WEB_GATEWAY_SETTINGS_FILE)
- Field defaults

Two unprefixed variables are honoured for deployment platforms:
- PORT overrides server.port
- APP_ENV selects the environment (development, staging, production)

Pattern: Pydantic BaseSettings with a cached accessor
"""

import os
from functools import lru_cache
from typing import Literal, Optional
from urllib.parse import quote

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

SETTINGS_FILE_ENV = "WEB_GATEWAY_SETTINGS_FILE"
DEFAULT_SETTINGS_FILE = "server-settings.json"

COOKIE_NAME_SUFFIX = " Cookie"
SESSION_SECRET_SUFFIX = " SessionSecret"


# =============================================================================
# Server Configuration
# =============================================================================


class ServerSettings(BaseModel):
    """Network identity and session policy of this server."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(
        default="Web Gateway",
        min_length=1,
        description="Server identity; also seeds the cookie name and signing secret",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Address the listening socket binds to",
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the server listens on (PORT env var wins)",
    )
    session_duration_seconds: int = Field(
        default=3600,
        ge=1,
        alias="sessionDurationSeconds",
        description="Session lifetime; drives both the store TTL and cookie Max-Age",
    )
    max_body_bytes: int = Field(
        default=100 * 1024,
        ge=1,
        alias="maxBodyBytes",
        description="Largest request body the decoder accepts",
    )


# =============================================================================
# Store Configuration
# =============================================================================


class DatabaseSettings(BaseModel):
    """Connection parameters for the session/document store (Redis)."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(
        default="localhost",
        description="Store host, or a full redis:// / rediss:// URL",
    )
    port: int = Field(default=6379, ge=1, le=65535)
    collection: str = Field(
        default="sessions",
        min_length=1,
        description="Namespace that prefixes every session key",
    )
    user: str = Field(default="")
    password: SecretStr = Field(default=SecretStr(""))
    pool_size: int = Field(
        default=10,
        ge=1,
        le=1000,
        alias="poolSize",
        description="Maximum pooled connections shared by concurrent requests",
    )

    def build_url(self, redact: bool = False) -> str:
        """
        Build the Redis connection URL.

        Args:
            redact: Replace the password with "***" (for logging).

        Returns:
            Connection URL using database 0.
        """
        if self.url.startswith(("redis://", "rediss://")):
            return self.url

        password = self.password.get_secret_value()
        if redact and password:
            password = "***"

        credentials = ""
        if self.user or password:
            credentials = f"{quote(self.user, safe='')}:{quote(password, safe='*')}@"

        return f"redis://{credentials}{self.url}:{self.port}/0"


# =============================================================================
# Application Settings
# =============================================================================


class Settings(BaseSettings):
    """
    Application settings.

    The nested layout mirrors the settings file:

        {
          "server": {"name": "...", "port": 3000, "sessionDurationSeconds": 3600},
          "database": {"url": "...", "port": 6379, "collection": "...",
                       "user": "...", "password": "..."}
        }
    """

    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("APP_ENV", "WEB_GATEWAY_ENVIRONMENT"),
        description="Deployment environment; selects error verbosity and access logging",
    )
    port_override: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        validation_alias="PORT",
        description="Platform-assigned port, takes precedence over server.port",
    )
    log_level: str = Field(default="INFO")
    metrics_enabled: bool = Field(
        default=False,
        description="Serve Prometheus metrics on /metrics",
    )
    v1_router_factory: Optional[str] = Field(
        default=None,
        description='Import string ("module:attribute") of the /v1 router factory',
    )
    authenticator: Optional[str] = Field(
        default=None,
        description='Import string ("module:attribute") of the Authenticator',
    )

    model_config = SettingsConfigDict(
        env_prefix="WEB_GATEWAY_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        json_file = os.getenv(SETTINGS_FILE_ENV, DEFAULT_SETTINGS_FILE)
        return (
            init_settings,
            env_settings,
            JsonConfigSettingsSource(settings_cls, json_file=json_file),
            file_secret_settings,
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    # =========================================================================
    # Derived values (computed from immutable fields)
    # =========================================================================

    @property
    def listen_port(self) -> int:
        """Port to bind: PORT env var, then server.port."""
        return self.port_override or self.server.port

    @property
    def expose_error_detail(self) -> bool:
        """Whether error responses include message and stack."""
        return self.environment != "production"

    @property
    def access_log_enabled(self) -> bool:
        return self.environment == "development"

    @property
    def cookie_name(self) -> str:
        return self.server.name + COOKIE_NAME_SUFFIX

    @property
    def session_secret(self) -> str:
        return self.server.name + SESSION_SECRET_SUFFIX

    @property
    def store_url(self) -> str:
        return self.database.build_url()


@lru_cache
def get_settings() -> Settings:
    """
    Get the application settings singleton.

    Uses functools.lru_cache so the environment and settings file are read
    exactly once per process.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()
