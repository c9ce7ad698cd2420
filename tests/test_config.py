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
"""Tests for the configuration module."""

import pytest
from pydantic import ValidationError

from session_guard.config import (
    DEFAULT_TOKEN_COOKIE_MAX_AGE,
    ConfigurationError,
    Settings,
    get_settings,
    validate_prod_settings,
)


class TestSettings:
    """Tests for the Settings class."""

    def test_settings_default_values(self) -> None:
        """Test that every setting has a usable default."""
        settings = Settings()

        assert settings.guard_environment == "dev"
        assert settings.session_lifetime_seconds == 3600
        assert settings.token_rotation_interval_seconds == 60
        assert settings.token_cookie_name == "__auth__"
        assert settings.token_cookie_max_age_seconds == DEFAULT_TOKEN_COOKIE_MAX_AGE
        assert settings.session_cookie_name == "sg_session"
        assert settings.strict_single_use is False
        assert settings.rotation_signal_header == "X-Token-Rotated"
        assert settings.session_bind_enabled is False
        assert settings.redis_host is None
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"

    def test_token_cookie_lifetime_is_six_months(self) -> None:
        """Test the default lifetime of the token cookie."""
        assert DEFAULT_TOKEN_COOKIE_MAX_AGE == 15552000

    def test_settings_custom_values(self) -> None:
        """Test that custom values override defaults."""
        settings = Settings(
            guard_environment="prod",
            session_lifetime_seconds=7200,
            token_rotation_interval_seconds=30,
            strict_single_use=True,
            redis_host="redis.internal",
            log_format="console",
        )

        assert settings.is_prod is True
        assert settings.is_dev is False
        assert settings.session_lifetime_seconds == 7200
        assert settings.token_rotation_interval_seconds == 30
        assert settings.strict_single_use is True
        assert settings.redis_host == "redis.internal"

    def test_invalid_environment_raises_error(self) -> None:
        """Test that unknown environments are rejected."""
        with pytest.raises(ValidationError):
            Settings(guard_environment="staging")

    def test_lifetime_bounds(self) -> None:
        """Test that the session lifetime is bounded."""
        with pytest.raises(ValidationError):
            Settings(session_lifetime_seconds=10)
        with pytest.raises(ValidationError):
            Settings(session_lifetime_seconds=2592001)

    @pytest.mark.parametrize("name", ["has space", "semi;colon", "eq=ual", 'quo"te'])
    def test_invalid_cookie_names_rejected(self, name: str) -> None:
        """Test that cookie names with separators are rejected."""
        with pytest.raises(ValidationError):
            Settings(token_cookie_name=name)

    def test_redacted_config_hides_redis_host(self) -> None:
        """Test that the redacted dictionary does not leak the Redis host."""
        settings = Settings(redis_host="redis.internal")

        redacted = settings.get_redacted_config_dict()

        assert redacted["redis_host"] == "(set)"
        assert "redis.internal" not in redacted.values()


class TestValidateProdSettings:
    """Tests for production validation."""

    def test_dev_needs_nothing(self) -> None:
        """Test that development mode passes without Redis."""
        validate_prod_settings(Settings())

    def test_prod_requires_redis_host(self) -> None:
        """Test that production mode requires REDIS_HOST."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_prod_settings(Settings(guard_environment="prod"))

        assert "REDIS_HOST" in str(exc_info.value)

    def test_prod_with_redis_passes(self) -> None:
        """Test that a complete production configuration passes."""
        validate_prod_settings(Settings(guard_environment="prod", redis_host="redis"))


class TestGetSettings:
    """Tests for the get_settings function."""

    @pytest.fixture(autouse=True)
    def clear_cache(self):
        """Clear the settings cache around each test."""
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_get_settings_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that settings come from environment variables."""
        monkeypatch.setenv("SESSION_LIFETIME_SECONDS", "1800")
        monkeypatch.setenv("STRICT_SINGLE_USE", "true")

        settings = get_settings()

        assert settings.session_lifetime_seconds == 1800
        assert settings.strict_single_use is True

    def test_get_settings_is_cached(self) -> None:
        """Test that get_settings returns the same instance."""
        assert get_settings() is get_settings()

    def test_invalid_environment_raises_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that an invalid environment gets a helpful message."""
        monkeypatch.setenv("GUARD_ENVIRONMENT", "staging")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "GUARD_ENVIRONMENT" in str(exc_info.value)

    def test_invalid_lifetime_raises_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that an out-of-range lifetime gets a helpful message."""
        monkeypatch.setenv("SESSION_LIFETIME_SECONDS", "5")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "SESSION_LIFETIME_SECONDS" in str(exc_info.value)

    def test_invalid_cookie_name_raises_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a bad cookie name gets a helpful message."""
        monkeypatch.setenv("TOKEN_COOKIE_NAME", "bad name")

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "cookie" in str(exc_info.value).lower()

    def test_prod_without_redis_raises_configuration_error(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that production settings are validated."""
        monkeypatch.setenv("GUARD_ENVIRONMENT", "prod")
        monkeypatch.delenv("REDIS_HOST", raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            get_settings()

        assert "REDIS_HOST" in str(exc_info.value)
