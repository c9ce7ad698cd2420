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
"""Dependency wiring module for the Session Guard service.

This module provides lazy instantiation of the guard's collaborators:
- SessionStore: in-memory in dev, Redis-backed in prod
- SessionGuard: the protocol, configured from settings

Dependencies are instantiated without performing network I/O, ensuring
fast health checks and fail-fast behavior for configuration issues. Each
application owns its own container; there is no process-wide instance.
"""

import asyncio
from typing import Any

from session_guard.config import Settings
from session_guard.logging import get_logger
from session_guard.security.context import GuardContext
from session_guard.security.guard import SessionGuard
from session_guard.stores.session_store import InMemorySessionStore, SessionStore

logger = get_logger(__name__)


class DependencyContainer:
    """Container for managing service dependencies.

    The container respects the GUARD_ENVIRONMENT setting:
    - 'dev': Uses the in-memory session store
    - 'prod': Uses the Redis-backed session store
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize the dependency container.

        Dependencies are NOT created here - they are lazily instantiated
        on first access to ensure fast startup and health checks.

        Args:
            settings: The service settings.
        """
        self._settings = settings
        self._session_store: SessionStore | None = None
        self._guard: SessionGuard | None = None
        self._initialized = False
        self._initialization_error: Exception | None = None
        logger.info(
            "Initializing dependency container",
            environment=settings.guard_environment,
        )

    @property
    def environment(self) -> str:
        """Get the current environment mode ('dev' or 'prod')."""
        return self._settings.guard_environment

    @property
    def settings(self) -> Settings:
        """Get the service settings."""
        return self._settings

    def _ensure_initialized(self) -> None:
        """Lazily initialize all dependencies on first access."""
        if self._initialized:
            return

        try:
            if self._settings.is_prod and self._settings.redis_host:
                from session_guard.stores.redis_session_store import RedisSessionStore

                logger.info(
                    "Production mode enabled - using Redis-backed session store",
                    environment=self.environment,
                )
                self._session_store = RedisSessionStore(
                    host=self._settings.redis_host,
                    port=self._settings.redis_port,
                    db=self._settings.redis_db,
                    tls_enabled=self._settings.redis_tls_enabled,
                    lock_timeout=self._settings.redis_lock_timeout_seconds,
                )
            else:
                logger.info(
                    "Development mode - using in-memory session store",
                    environment=self.environment,
                )
                self._session_store = InMemorySessionStore()

            self._guard = SessionGuard(GuardContext.from_settings(self._settings))

            self._initialized = True
            logger.info("Dependencies initialized successfully", environment=self.environment)
        except Exception as e:
            self._initialization_error = e
            self._initialized = True  # Mark as initialized to avoid retrying
            logger.error("Failed to initialize dependencies", error=str(e))

    def _raise_if_failed(self) -> None:
        if self._initialization_error:
            raise RuntimeError(
                f"Dependencies failed to initialize: {self._initialization_error}"
            )

    @property
    def session_store(self) -> SessionStore:
        """Get the session store instance (lazily initialized).

        Raises:
            RuntimeError: If initialization failed.
        """
        self._ensure_initialized()
        self._raise_if_failed()
        if self._session_store is None:
            raise RuntimeError("Session store not initialized")
        return self._session_store

    @property
    def guard(self) -> SessionGuard:
        """Get the session guard instance (lazily initialized).

        Raises:
            RuntimeError: If initialization failed.
        """
        self._ensure_initialized()
        self._raise_if_failed()
        if self._guard is None:
            raise RuntimeError("Session guard not initialized")
        return self._guard

    def health_check(self) -> dict[str, Any]:
        """Check that all dependencies were constructed.

        This triggers lazy initialization if not already done.

        Returns:
            A dictionary with health status for each dependency.
        """
        self._ensure_initialized()

        if self._initialization_error:
            return {
                "healthy": False,
                "error": str(self._initialization_error),
                "session_store": False,
                "guard": False,
            }

        store_ok = self._session_store is not None
        guard_ok = self._guard is not None
        return {
            "healthy": store_ok and guard_ok,
            "session_store": store_ok,
            "guard": guard_ok,
        }

    async def health_check_backends(self, timeout_seconds: float = 2.0) -> dict[str, str]:
        """Probe the storage backend.

        Args:
            timeout_seconds: Maximum time to wait for the backend.

        Returns:
            A mapping of backend name to "ok", "in_memory", "unavailable"
            or "timeout".
        """
        store = self.session_store
        if isinstance(store, InMemorySessionStore):
            return {"session_store": "in_memory"}

        try:
            healthy = await asyncio.wait_for(store.health_check(), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Session store health check timed out", timeout=timeout_seconds)
            return {"session_store": "timeout"}

        return {"session_store": "ok" if healthy else "unavailable"}

    async def close(self) -> None:
        """Close dependencies that hold external resources."""
        if self._session_store is not None:
            await self._session_store.close()
            logger.info("Session store closed")
