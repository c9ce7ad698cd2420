# ============================================================
# SPDX-License-Identifier: GPL-3.0-or-later
# This program was generated as part of the AgentFoundry project.
# Copyright (C) 2025  John Brosnihan
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
# ============================================================
"""Configuration module for the Session Guard service.

This module provides Pydantic-based settings validation for all environment
variables used by the guard. It fails fast when production configuration is
incomplete.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Six months of 30 days, the lifetime of the persistent token credential
DEFAULT_TOKEN_COOKIE_MAX_AGE = 60 * 60 * 24 * 30 * 6


class Settings(BaseSettings):
    """Session Guard configuration settings.

    Every value has a usable default so the service boots in development
    mode without any environment. Production mode additionally requires a
    Redis backend (see validate_prod_settings).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment switch - controls cookie security and which store is used
    guard_environment: Literal["dev", "prod"] = Field(
        default="dev",
        description="Environment mode: 'dev' uses the in-memory store, 'prod' uses Redis.",
    )

    # Session binding and token rotation
    session_lifetime_seconds: int = Field(
        default=3600,
        ge=60,
        le=2592000,
        description="Sliding session lifetime in seconds. Default: 1 hour.",
    )
    token_rotation_interval_seconds: int = Field(
        default=60,
        ge=1,
        le=86400,
        description="Minimum interval between two rotations of the anti-replay token.",
    )
    token_cookie_name: str = Field(
        default="__auth__",
        min_length=1,
        description="Name of the persistent cookie carrying the rotation token.",
    )
    token_cookie_max_age_seconds: int = Field(
        default=DEFAULT_TOKEN_COOKIE_MAX_AGE,
        ge=60,
        description="Lifetime of the rotation token cookie. Default: 6 months.",
    )
    session_cookie_name: str = Field(
        default="sg_session",
        min_length=1,
        description="Name of the cookie carrying the server-side session identifier.",
    )
    strict_single_use: bool = Field(
        default=False,
        description="Rotate the token on every validated request instead of once per interval.",
    )
    rotation_signal_header: str = Field(
        default="X-Token-Rotated",
        min_length=1,
        description="Response header announcing that the token was rotated.",
    )
    server_software: str = Field(
        default="uvicorn",
        min_length=1,
        description="Server software identifier bound into the session fingerprint.",
    )
    session_bind_enabled: bool = Field(
        default=False,
        description="Enable POST /v1/session/bind for development and testing.",
    )

    # Redis configuration (required in prod, optional in dev)
    redis_host: str | None = Field(
        default=None,
        description="Redis host address.",
    )
    redis_port: int = Field(
        default=6379,
        ge=1,
        le=65535,
        description="Redis port number.",
    )
    redis_db: int = Field(
        default=0,
        ge=0,
        le=15,
        description="Redis database number.",
    )
    redis_tls_enabled: bool = Field(
        default=False,
        description="Enable TLS for Redis connections.",
    )
    redis_lock_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Lifetime of the per-session Redis lock.",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level for the service.",
    )
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="Log output format. Use 'json' for production, 'console' for development.",
    )

    # Service configuration
    service_host: str = Field(
        default="0.0.0.0",
        description="Host to bind the service to.",
    )
    service_port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port to bind the service to.",
    )

    @field_validator("token_cookie_name", "session_cookie_name")
    @classmethod
    def validate_cookie_name(cls, v: str) -> str:
        """Reject cookie names containing separators or whitespace."""
        if any(c in v for c in ' ;,="\t\r\n'):
            raise ValueError(f"Invalid cookie name: {v!r}")
        return v

    @property
    def is_prod(self) -> bool:
        """Check if running in production mode."""
        return self.guard_environment == "prod"

    @property
    def is_dev(self) -> bool:
        """Check if running in development mode."""
        return self.guard_environment == "dev"

    def get_redacted_config_dict(self) -> dict[str, str]:
        """Return a dictionary of configuration for logging with hosts redacted.

        Returns:
            A dictionary with redacted sensitive values.
        """
        return {
            "guard_environment": self.guard_environment,
            "session_lifetime_seconds": str(self.session_lifetime_seconds),
            "token_rotation_interval_seconds": str(self.token_rotation_interval_seconds),
            "token_cookie_name": self.token_cookie_name,
            "session_cookie_name": self.session_cookie_name,
            "strict_single_use": str(self.strict_single_use),
            "session_bind_enabled": str(self.session_bind_enabled),
            "redis_host": "(set)" if self.redis_host else "(not set)",
            "redis_port": str(self.redis_port),
            "redis_db": str(self.redis_db),
            "redis_tls_enabled": str(self.redis_tls_enabled),
            "log_level": self.log_level,
            "log_format": self.log_format,
            "service_host": self.service_host,
            "service_port": str(self.service_port),
        }


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def validate_prod_settings(settings: Settings) -> None:
    """Validate that required production settings are present.

    In production the session store must be shared between workers, so
    REDIS_HOST is mandatory.

    Args:
        settings: The settings instance to validate.

    Raises:
        ConfigurationError: If required production settings are missing.
    """
    if not settings.is_prod:
        return

    missing = []

    if not settings.redis_host:
        missing.append("REDIS_HOST")

    if missing:
        raise ConfigurationError(
            f"Production mode requires the following environment variables: {', '.join(missing)}. "
            "Either set these values or use GUARD_ENVIRONMENT=dev for development mode."
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: The validated settings instance.

    Raises:
        ConfigurationError: If environment variables are missing or invalid.
    """
    try:
        settings = Settings()
        validate_prod_settings(settings)
        return settings
    except ConfigurationError:
        raise
    except Exception as e:
        error_msg = str(e)
        if "guard_environment" in error_msg.lower():
            raise ConfigurationError(
                "GUARD_ENVIRONMENT must be either 'dev' or 'prod'. "
                "Use 'dev' for local development with the in-memory store, "
                "or 'prod' for production with Redis."
            ) from e
        if "session_lifetime_seconds" in error_msg.lower():
            raise ConfigurationError(
                "SESSION_LIFETIME_SECONDS must be an integer between 60 and 2592000."
            ) from e
        if "cookie_name" in error_msg.lower():
            raise ConfigurationError(
                "TOKEN_COOKIE_NAME and SESSION_COOKIE_NAME must be valid cookie names."
            ) from e
        raise ConfigurationError(f"Configuration error: {error_msg}") from e
