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
"""Session store abstraction and in-memory implementation.

This module defines the SessionStore protocol the guard uses to persist
session records server-side, and an InMemorySessionStore for development
use. Stores serialize the read-decide-write cycle of a single session
through lock(), so concurrent requests on one session cannot race on the
rotation token or its schedule. Different sessions never block each other.
"""

import asyncio
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

import structlog

from session_guard.models.session import SessionRecord

logger = structlog.get_logger(__name__)


class SessionStoreError(Exception):
    """Base exception for session store failures.

    Raised when the backing storage cannot be reached or used. These
    errors are fatal to the current request and are never swallowed by the
    guard.
    """

    pass


def validate_session_id(session_id: str) -> str:
    """Validate a session identifier.

    Args:
        session_id: The identifier to check.

    Returns:
        The identifier unchanged.

    Raises:
        ValueError: If session_id is not a non-empty string.
    """
    if not isinstance(session_id, str):
        raise ValueError(f"session_id must be a str, got {type(session_id).__name__}")
    if not session_id:
        raise ValueError("session_id must not be empty")
    return session_id


class SessionStore(ABC):
    """Abstract base class for session record storage.

    Implementations must keep records server-side only and must make
    lock() exclusive per session identifier across every worker that
    shares the store.

    Methods:
        load: Retrieve a session record.
        save: Persist a session record.
        delete: Remove a session record.
        lock: Serialize access to one session.
    """

    @abstractmethod
    async def load(self, session_id: str) -> SessionRecord | None:
        """Retrieve a session record by ID.

        Args:
            session_id: The session identifier.

        Returns:
            The SessionRecord if found, None otherwise.

        Raises:
            ValueError: If session_id is invalid.
        """
        pass

    @abstractmethod
    async def save(
        self, session_id: str, record: SessionRecord, ttl_seconds: int | None = None
    ) -> None:
        """Persist a session record.

        Args:
            session_id: The session identifier.
            record: The record to store.
            ttl_seconds: Optional storage lifetime in seconds.

        Raises:
            ValueError: If session_id is invalid.
        """
        pass

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Delete a session record.

        Args:
            session_id: The session identifier.

        Returns:
            True if a record was deleted, False if none existed.

        Raises:
            ValueError: If session_id is invalid.
        """
        pass

    @abstractmethod
    def lock(self, session_id: str) -> AbstractAsyncContextManager[None]:
        """Return a context manager holding the session's exclusive lock.

        Args:
            session_id: The session identifier.

        Returns:
            An async context manager; the lock is held inside the block.
        """
        pass

    async def health_check(self) -> bool:
        """Check if the store is usable.

        Returns:
            True if healthy, False otherwise.
        """
        return True

    async def close(self) -> None:
        """Release any resources held by the store."""
        return None


class InMemorySessionStore(SessionStore):
    """In-memory implementation of SessionStore.

    This implementation is suitable for development and testing only.
    Records are stored as serialized copies, so changes made to a loaded
    record are invisible until save() is called, mirroring a real backend.

    WARNING: Data is lost when the process exits and locks are only
    exclusive within one process. Use RedisSessionStore for production.

    Attributes:
        _records: Session ID to (payload, monotonic expiry or None).
        _locks: Session ID to its asyncio lock and the number of holders
            and waiters. Entries are dropped once nobody uses them.
        _mutex: Threading lock guarding both dictionaries.
    """

    def __init__(self) -> None:
        """Initialize the in-memory session store."""
        self._records: dict[str, tuple[dict[str, Any], float | None]] = {}
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}
        self._mutex = threading.Lock()
        logger.info("Initialized in-memory session store (dev-only)")

    async def load(self, session_id: str) -> SessionRecord | None:
        """Retrieve a session record by ID, honouring its TTL."""
        validate_session_id(session_id)

        with self._mutex:
            entry = self._records.get(session_id)
            if entry is not None and entry[1] is not None and entry[1] <= time.monotonic():
                del self._records[session_id]
                entry = None

        if entry is None:
            logger.debug("Session record not found")
            return None

        return SessionRecord.from_storage(entry[0])

    async def save(
        self, session_id: str, record: SessionRecord, ttl_seconds: int | None = None
    ) -> None:
        """Persist a session record."""
        validate_session_id(session_id)

        expires_at = time.monotonic() + ttl_seconds if ttl_seconds else None
        with self._mutex:
            self._records[session_id] = (record.to_storage(), expires_at)

        logger.debug(
            "Session record saved",
            authenticated=record.is_authenticated(),
            ttl_seconds=ttl_seconds,
        )

    async def delete(self, session_id: str) -> bool:
        """Delete a session record."""
        validate_session_id(session_id)

        with self._mutex:
            existed = self._records.pop(session_id, None) is not None

        return existed

    def _claim_lock(self, session_id: str) -> asyncio.Lock:
        with self._mutex:
            lock, users = self._locks.get(session_id, (None, 0))
            if lock is None:
                lock = asyncio.Lock()
            self._locks[session_id] = (lock, users + 1)
            return lock

    def _release_lock(self, session_id: str) -> None:
        with self._mutex:
            lock, users = self._locks[session_id]
            if users <= 1:
                del self._locks[session_id]
            else:
                self._locks[session_id] = (lock, users - 1)

    @asynccontextmanager
    async def lock(self, session_id: str) -> AsyncIterator[None]:
        """Hold the session's asyncio lock for the duration of the block."""
        validate_session_id(session_id)
        lock = self._claim_lock(session_id)
        try:
            async with lock:
                yield
        finally:
            self._release_lock(session_id)
