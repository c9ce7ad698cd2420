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
"""Session Guard stores.

This module exports the session store abstraction and its in-memory and
Redis-backed implementations.
"""

from session_guard.stores.redis_session_store import (
    RedisConnectionFailedError,
    RedisSessionStore,
    RedisSessionStoreError,
    SessionLockTimeoutError,
)
from session_guard.stores.session_store import (
    InMemorySessionStore,
    SessionStore,
    SessionStoreError,
    validate_session_id,
)

__all__ = [
    "InMemorySessionStore",
    "RedisConnectionFailedError",
    "RedisSessionStore",
    "RedisSessionStoreError",
    "SessionLockTimeoutError",
    "SessionStore",
    "SessionStoreError",
    "validate_session_id",
]
