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
"""Redis-backed session store implementation.

This module provides a Redis-backed implementation of the SessionStore ABC
for production use. Records are stored as JSON with a TTL aligned to the
session lifetime, and per-session exclusivity is provided by a Redis lock
so every worker sharing the database serializes on the same key.

Key patterns:
- Session data: sg:session:{session_id} -> JSON payload
- Session lock: sg:lock:{session_id} -> redis-py lock token
"""

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
import structlog
from pydantic import ValidationError
from redis.exceptions import LockError

from session_guard.logging import redact_session_id
from session_guard.models.session import SessionRecord
from session_guard.stores.session_store import (
    SessionStore,
    SessionStoreError,
    validate_session_id,
)

logger = structlog.get_logger(__name__)


class RedisSessionStoreError(SessionStoreError):
    """Base exception for Redis session store errors."""

    pass


class RedisConnectionFailedError(RedisSessionStoreError):
    """Raised when Redis connection or a Redis command fails."""

    pass


class SessionLockTimeoutError(RedisSessionStoreError):
    """Raised when a session lock cannot be acquired in time."""

    pass


class RedisSessionStore(SessionStore):
    """Redis-backed implementation of SessionStore.

    This implementation stores records as JSON in Redis with:
    - TTL-based expiration aligned with the session lifetime
    - A redis-py distributed lock per session for read-decide-write atomicity
    - Support for TLS connections when configured

    Attributes:
        _client: The async Redis client instance, created lazily.
    """

    SESSION_KEY_PREFIX = "sg:session:"
    LOCK_KEY_PREFIX = "sg:lock:"

    def __init__(
        self,
        host: str,
        port: int = 6379,
        db: int = 0,
        tls_enabled: bool = False,
        lock_timeout: float = 5.0,
        lock_blocking_timeout: float | None = None,
    ) -> None:
        """Initialize the Redis session store.

        Does not perform network I/O during initialization. Connection is
        established lazily on first operation.

        Args:
            host: Redis server hostname.
            port: Redis server port (default: 6379).
            db: Redis database number (default: 0).
            tls_enabled: Whether to use TLS for connections (default: False).
            lock_timeout: Seconds after which a held lock expires on its own.
            lock_blocking_timeout: Seconds to wait for a lock. Defaults to
                lock_timeout.
        """
        self._host = host
        self._port = port
        self._db = db
        self._tls_enabled = tls_enabled
        self._lock_timeout = lock_timeout
        self._lock_blocking_timeout = (
            lock_blocking_timeout if lock_blocking_timeout is not None else lock_timeout
        )
        self._client: redis.Redis | None = None

        logger.info(
            "Initialized Redis session store",
            host=self._redact_host(host),
            port=port,
            db=db,
            tls_enabled=tls_enabled,
        )

    def _redact_host(self, host: str) -> str:
        """Redact host information for logging.

        Keeps only the first and last characters, replacing the middle with *.

        Args:
            host: The hostname to redact.

        Returns:
            Redacted hostname string.
        """
        if len(host) <= 4:
            return "*" * len(host)
        return f"{host[0]}{'*' * (len(host) - 2)}{host[-1]}"

    async def _get_client(self) -> redis.Redis:
        """Get or create the Redis client.

        Returns:
            The Redis async client instance.

        Raises:
            RedisConnectionFailedError: If connection to Redis fails.
        """
        if self._client is None:
            try:
                client = redis.Redis(
                    host=self._host,
                    port=self._port,
                    db=self._db,
                    ssl=self._tls_enabled,
                    decode_responses=True,
                    socket_timeout=5.0,
                    socket_connect_timeout=5.0,
                )
                await client.ping()
                self._client = client

                logger.info(
                    "Redis connection established",
                    host=self._redact_host(self._host),
                    port=self._port,
                    db=self._db,
                )
            except redis.RedisError as e:
                logger.error(
                    "Failed to connect to Redis",
                    host=self._redact_host(self._host),
                    port=self._port,
                    error=str(e),
                )
                raise RedisConnectionFailedError(
                    f"Failed to connect to Redis at {self._redact_host(self._host)}:{self._port}"
                ) from e

        return self._client

    def _session_key(self, session_id: str) -> str:
        return f"{self.SESSION_KEY_PREFIX}{session_id}"

    def _lock_key(self, session_id: str) -> str:
        return f"{self.LOCK_KEY_PREFIX}{session_id}"

    async def load(self, session_id: str) -> SessionRecord | None:
        """Retrieve a session record by ID.

        A payload that is not valid JSON, or whose fields have the wrong
        types, is treated as absent, which the guard then handles as an
        unauthenticated session.

        Raises:
            ValueError: If session_id is invalid.
            RedisConnectionFailedError: If Redis fails.
        """
        validate_session_id(session_id)

        try:
            client = await self._get_client()
            data = await client.get(self._session_key(session_id))
        except redis.RedisError as e:
            logger.error(
                "Failed to load session from Redis",
                session_ref=redact_session_id(session_id),
                error=str(e),
            )
            raise RedisConnectionFailedError(f"Failed to load session: {e}") from e

        if data is None:
            logger.debug("Session record not found in Redis")
            return None

        try:
            payload = json.loads(data)
            if isinstance(payload, dict):
                return SessionRecord.from_storage(payload)
        except (json.JSONDecodeError, ValidationError):
            pass

        logger.warning(
            "Discarding unreadable session payload",
            session_ref=redact_session_id(session_id),
        )
        return None

    async def save(
        self, session_id: str, record: SessionRecord, ttl_seconds: int | None = None
    ) -> None:
        """Persist a session record, with a TTL when one is given.

        Raises:
            ValueError: If session_id is invalid.
            RedisConnectionFailedError: If Redis fails.
        """
        validate_session_id(session_id)
        payload = json.dumps(record.to_storage())

        try:
            client = await self._get_client()
            if ttl_seconds:
                await client.setex(self._session_key(session_id), max(int(ttl_seconds), 1), payload)
            else:
                await client.set(self._session_key(session_id), payload)
        except redis.RedisError as e:
            logger.error(
                "Failed to save session in Redis",
                session_ref=redact_session_id(session_id),
                error=str(e),
            )
            raise RedisConnectionFailedError(f"Failed to save session: {e}") from e

        logger.debug(
            "Session record saved in Redis",
            authenticated=record.is_authenticated(),
            ttl_seconds=ttl_seconds,
        )

    async def delete(self, session_id: str) -> bool:
        """Delete a session record.

        Raises:
            ValueError: If session_id is invalid.
            RedisConnectionFailedError: If Redis fails.
        """
        validate_session_id(session_id)

        try:
            client = await self._get_client()
            deleted = await client.delete(self._session_key(session_id))
        except redis.RedisError as e:
            logger.error(
                "Failed to delete session from Redis",
                session_ref=redact_session_id(session_id),
                error=str(e),
            )
            raise RedisConnectionFailedError(f"Failed to delete session: {e}") from e

        return bool(deleted)

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """Hold the session's Redis lock for the duration of the block.

        Raises:
            ValueError: If session_id is invalid.
            SessionLockTimeoutError: If the lock is not acquired in time.
            RedisConnectionFailedError: If Redis fails.
        """
        validate_session_id(session_id)
        client = await self._get_client()
        session_lock = client.lock(
            self._lock_key(session_id),
            timeout=self._lock_timeout,
            blocking_timeout=self._lock_blocking_timeout,
        )

        try:
            acquired = await session_lock.acquire()
        except redis.RedisError as e:
            raise RedisConnectionFailedError(f"Failed to acquire session lock: {e}") from e

        if not acquired:
            logger.warning(
                "Timed out waiting for session lock",
                session_ref=redact_session_id(session_id),
                blocking_timeout=self._lock_blocking_timeout,
            )
            raise SessionLockTimeoutError("Timed out waiting for session lock")

        try:
            yield
        finally:
            try:
                await session_lock.release()
            except LockError:
                # Lock expired while held; another request may own it now
                logger.warning(
                    "Session lock expired before release",
                    session_ref=redact_session_id(session_id),
                )

    async def health_check(self) -> bool:
        """Check Redis connectivity with a PING command.

        Returns:
            True if Redis is healthy and responsive, False otherwise.
        """
        try:
            client = await self._get_client()
            await client.ping()
            return True
        except (redis.RedisError, RedisSessionStoreError) as e:
            logger.debug("Redis health check failed", error_type=type(e).__name__)
            return False

    async def close(self) -> None:
        """Close the Redis connection.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("Redis connection closed")
