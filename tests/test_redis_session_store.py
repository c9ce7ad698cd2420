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
"""Tests for Redis session store."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockError

from session_guard.models.session import SessionRecord
from session_guard.stores.redis_session_store import (
    RedisConnectionFailedError,
    RedisSessionStore,
    SessionLockTimeoutError,
)
from session_guard.stores.session_store import SessionStoreError


def make_record() -> SessionRecord:
    """Build a record with every field populated."""
    return SessionRecord(
        auth={
            "user_agent": "UA1",
            "hostname": "h",
            "http_host": "h:443",
            "server_software": "srv",
            "port": 443,
            "expire_time": 100,
        },
        rotation_token="tok",
        token_time=60,
    )


class TestRedisSessionStoreInit:
    """Tests for RedisSessionStore initialization."""

    def test_init_stores_config(self) -> None:
        """Test that initialization stores configuration without connecting."""
        store = RedisSessionStore(
            host="redis.example.com",
            port=6380,
            db=2,
            tls_enabled=True,
            lock_timeout=3.0,
        )

        assert store._host == "redis.example.com"
        assert store._port == 6380
        assert store._db == 2
        assert store._tls_enabled is True
        assert store._lock_timeout == 3.0
        assert store._lock_blocking_timeout == 3.0
        assert store._client is None

    def test_redact_host(self) -> None:
        """Test host redaction for short and long hostnames."""
        store = RedisSessionStore(host="abc")

        assert store._redact_host("abc") == "***"
        redacted = store._redact_host("redis.example.com")
        assert redacted.startswith("r")
        assert redacted.endswith("m")
        assert "edis" not in redacted

    def test_errors_share_store_base(self) -> None:
        """Test that Redis errors are session store errors."""
        assert issubclass(RedisConnectionFailedError, SessionStoreError)
        assert issubclass(SessionLockTimeoutError, SessionStoreError)


class TestRedisSessionStoreOperations:
    """Tests for RedisSessionStore operations with mocked Redis."""

    @pytest.fixture
    def lock(self) -> MagicMock:
        """Create a mock redis-py lock."""
        lock = MagicMock()
        lock.acquire = AsyncMock(return_value=True)
        lock.release = AsyncMock()
        return lock

    @pytest.fixture
    def mock_redis_client(self, lock: MagicMock) -> AsyncMock:
        """Create a mock Redis async client."""
        client = AsyncMock()
        client.ping = AsyncMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock()
        client.setex = AsyncMock()
        client.delete = AsyncMock(return_value=1)
        client.aclose = AsyncMock()
        client.lock = MagicMock(return_value=lock)
        return client

    @pytest.fixture
    def store(self, mock_redis_client: AsyncMock) -> RedisSessionStore:
        """Create a RedisSessionStore with a mocked client."""
        store = RedisSessionStore(host="localhost")
        store._client = mock_redis_client
        return store

    @pytest.mark.asyncio
    async def test_load_missing(self, store: RedisSessionStore) -> None:
        """Test that a missing key loads as None."""
        assert await store.load("s1") is None
        store._client.get.assert_called_once_with("sg:session:s1")

    @pytest.mark.asyncio
    async def test_load_existing(self, store: RedisSessionStore) -> None:
        """Test that a stored payload is deserialized."""
        record = make_record()
        store._client.get.return_value = json.dumps(record.to_storage())

        assert await store.load("s1") == record

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["{not json", "[1, 2]", '"text"'])
    async def test_load_unreadable_payload(self, store: RedisSessionStore, payload: str) -> None:
        """Test that corrupt payloads are treated as absent."""
        store._client.get.return_value = payload

        assert await store.load("s1") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"rotation_token": 5, "token_time": "soon"},
            {"auth": None, "rotation_token": None, "token_time": [1]},
        ],
    )
    async def test_load_wrongly_typed_fields(self, store: RedisSessionStore, payload: dict) -> None:
        """Test that a payload with mistyped fields is treated as absent."""
        store._client.get.return_value = json.dumps(payload)

        assert await store.load("s1") is None

    @pytest.mark.asyncio
    async def test_save_with_ttl(self, store: RedisSessionStore) -> None:
        """Test that a TTL uses SETEX."""
        record = make_record()

        await store.save("s1", record, ttl_seconds=7200)

        key, ttl, payload = store._client.setex.call_args.args
        assert key == "sg:session:s1"
        assert ttl == 7200
        assert json.loads(payload) == record.to_storage()
        store._client.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_save_without_ttl(self, store: RedisSessionStore) -> None:
        """Test that no TTL uses SET."""
        await store.save("s1", make_record())

        store._client.set.assert_called_once()
        store._client.setex.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self, store: RedisSessionStore) -> None:
        """Test deleting a session key."""
        assert await store.delete("s1") is True
        store._client.delete.assert_called_once_with("sg:session:s1")

        store._client.delete.return_value = 0
        assert await store.delete("s1") is False

    @pytest.mark.asyncio
    async def test_redis_errors_are_wrapped(self, store: RedisSessionStore) -> None:
        """Test that Redis failures surface as store errors."""
        store._client.get.side_effect = RedisConnectionError("down")
        store._client.setex.side_effect = RedisConnectionError("down")
        store._client.delete.side_effect = RedisConnectionError("down")

        with pytest.raises(RedisConnectionFailedError):
            await store.load("s1")
        with pytest.raises(RedisConnectionFailedError):
            await store.save("s1", make_record(), ttl_seconds=10)
        with pytest.raises(RedisConnectionFailedError):
            await store.delete("s1")

    @pytest.mark.asyncio
    async def test_lock_acquires_and_releases(
        self, store: RedisSessionStore, lock: MagicMock
    ) -> None:
        """Test that the session lock wraps the block."""
        async with store.lock("s1"):
            lock.acquire.assert_awaited_once()
            lock.release.assert_not_awaited()

        lock.release.assert_awaited_once()
        store._client.lock.assert_called_once_with(
            "sg:lock:s1", timeout=5.0, blocking_timeout=5.0
        )

    @pytest.mark.asyncio
    async def test_lock_released_on_error(
        self, store: RedisSessionStore, lock: MagicMock
    ) -> None:
        """Test that the lock is released when the block raises."""
        with pytest.raises(RuntimeError):
            async with store.lock("s1"):
                raise RuntimeError("boom")

        lock.release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lock_timeout(self, store: RedisSessionStore, lock: MagicMock) -> None:
        """Test that failing to acquire the lock raises."""
        lock.acquire.return_value = False

        with pytest.raises(SessionLockTimeoutError):
            async with store.lock("s1"):
                pass

        lock.release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_lock_release_is_tolerated(
        self, store: RedisSessionStore, lock: MagicMock
    ) -> None:
        """Test that releasing an already expired lock does not raise."""
        lock.release.side_effect = LockError("expired")

        async with store.lock("s1"):
            pass

    @pytest.mark.asyncio
    async def test_health_check(self, store: RedisSessionStore) -> None:
        """Test health check success and failure."""
        assert await store.health_check() is True

        store._client.ping.side_effect = RedisConnectionError("down")
        assert await store.health_check() is False

    @pytest.mark.asyncio
    async def test_close(self, store: RedisSessionStore, mock_redis_client: AsyncMock) -> None:
        """Test that close releases the client."""
        await store.close()

        mock_redis_client.aclose.assert_awaited_once()
        assert store._client is None


class TestRedisSessionStoreConnection:
    """Tests for lazy connection handling."""

    @pytest.mark.asyncio
    async def test_connection_failure_raises(self) -> None:
        """Test that a failed PING raises RedisConnectionFailedError."""
        client = AsyncMock()
        client.ping.side_effect = RedisConnectionError("refused")
        store = RedisSessionStore(host="redis.example.com")

        with patch(
            "session_guard.stores.redis_session_store.redis.Redis", return_value=client
        ):
            with pytest.raises(RedisConnectionFailedError):
                await store.load("s1")

        assert store._client is None

    @pytest.mark.asyncio
    async def test_client_created_once(self) -> None:
        """Test that the client is reused after the first connection."""
        client = AsyncMock()
        client.get = AsyncMock(return_value=None)
        store = RedisSessionStore(host="redis.example.com", port=6380, tls_enabled=True)

        with patch(
            "session_guard.stores.redis_session_store.redis.Redis", return_value=client
        ) as factory:
            await store.load("s1")
            await store.load("s2")

        factory.assert_called_once()
        assert factory.call_args.kwargs["ssl"] is True
        assert factory.call_args.kwargs["decode_responses"] is True
