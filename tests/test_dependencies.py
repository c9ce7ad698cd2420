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
"""Tests for the dependencies module."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from session_guard.config import Settings
from session_guard.dependencies import DependencyContainer
from session_guard.security.guard import SessionGuard
from session_guard.stores.redis_session_store import RedisSessionStore
from session_guard.stores.session_store import InMemorySessionStore


class TestDependencyContainer:
    """Tests for the DependencyContainer class."""

    def test_dev_uses_in_memory_store(self) -> None:
        """Test that development mode wires the in-memory store."""
        container = DependencyContainer(Settings())

        assert isinstance(container.session_store, InMemorySessionStore)
        assert isinstance(container.guard, SessionGuard)
        assert container.environment == "dev"

    def test_prod_uses_redis_store(self) -> None:
        """Test that production mode wires the Redis store without connecting."""
        container = DependencyContainer(
            Settings(guard_environment="prod", redis_host="redis.internal")
        )

        store = container.session_store

        assert isinstance(store, RedisSessionStore)
        assert store._client is None

    def test_guard_context_follows_settings(self) -> None:
        """Test that the guard is configured from settings."""
        settings = Settings(
            session_lifetime_seconds=1800,
            token_rotation_interval_seconds=30,
            token_cookie_name="tok",
            strict_single_use=True,
        )
        context = DependencyContainer(settings).guard.context

        assert context.session_lifetime == 1800
        assert context.rotation_interval == 30
        assert context.token_cookie_name == "tok"
        assert context.strict_single_use is True
        assert context.is_production is False

    def test_dependencies_are_created_once(self) -> None:
        """Test that lazy properties return the same instances."""
        container = DependencyContainer(Settings())

        assert container.session_store is container.session_store
        assert container.guard is container.guard

    def test_health_check(self) -> None:
        """Test the construction health check."""
        health = DependencyContainer(Settings()).health_check()

        assert health == {"healthy": True, "session_store": True, "guard": True}

    def test_initialization_failure_is_reported(self) -> None:
        """Test that a failed initialization is reported and raised on access."""
        container = DependencyContainer(Settings())

        with patch(
            "session_guard.dependencies.InMemorySessionStore",
            side_effect=RuntimeError("boom"),
        ):
            health = container.health_check()

        assert health["healthy"] is False
        assert "boom" in health["error"]
        with pytest.raises(RuntimeError):
            _ = container.session_store


class TestBackendHealth:
    """Tests for backend probing."""

    @pytest.mark.asyncio
    async def test_in_memory_backend(self) -> None:
        """Test that the in-memory store reports itself."""
        container = DependencyContainer(Settings())

        assert await container.health_check_backends() == {"session_store": "in_memory"}

    @pytest.mark.asyncio
    async def test_redis_backend_ok_and_unavailable(self) -> None:
        """Test Redis health reporting."""
        container = DependencyContainer(Settings(guard_environment="prod", redis_host="redis"))
        store = container.session_store

        with patch.object(store, "health_check", AsyncMock(return_value=True)):
            assert await container.health_check_backends() == {"session_store": "ok"}
        with patch.object(store, "health_check", AsyncMock(return_value=False)):
            assert await container.health_check_backends() == {"session_store": "unavailable"}

    @pytest.mark.asyncio
    async def test_redis_backend_timeout(self) -> None:
        """Test that a hanging backend is reported as timed out."""
        container = DependencyContainer(Settings(guard_environment="prod", redis_host="redis"))
        store = container.session_store

        async def hang() -> bool:
            await asyncio.sleep(10)
            return True

        with patch.object(store, "health_check", hang):
            result = await container.health_check_backends(timeout_seconds=0.01)

        assert result == {"session_store": "timeout"}

    @pytest.mark.asyncio
    async def test_close_closes_store(self) -> None:
        """Test that closing the container closes the store."""
        container = DependencyContainer(Settings())
        store = container.session_store

        with patch.object(store, "close", AsyncMock()) as close:
            await container.close()

        close.assert_awaited_once()
