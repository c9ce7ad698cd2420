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
"""Session record and fingerprint model definitions.

This module defines the server-side session record the guard reads and
mutates, and the fingerprint mapping frozen into it at authentication time.
The record is owned by the session store and never leaves the server.
"""

from typing import Any

from pydantic import BaseModel, Field

from session_guard.models.origin import RequestOrigin

# Keys a well-formed auth mapping must carry
AUTH_REQUIRED_KEYS: tuple[str, ...] = (
    "user_agent",
    "hostname",
    "http_host",
    "server_software",
    "port",
    "expire_time",
)


class AuthFingerprint(BaseModel):
    """Origin attributes frozen into a session at authentication time.

    Attributes:
        user_agent: User-Agent of the authenticating client.
        hostname: Host name the request was served for.
        http_host: Raw HTTP Host header, including any port.
        server_software: Server software identifier.
        port: Listening port that served the request.
        expire_time: Unix timestamp the session expires at, if already set.
    """

    user_agent: str = Field(..., description="User-Agent of the authenticating client")
    hostname: str = Field(..., description="Host name the request was served for")
    http_host: str = Field(..., description="Raw HTTP Host header")
    server_software: str = Field(..., description="Server software identifier")
    port: int = Field(..., ge=0, le=65535, description="Listening port")
    expire_time: int | None = Field(
        default=None, description="Unix timestamp the session expires at"
    )

    @classmethod
    def from_origin(cls, origin: RequestOrigin, expire_time: int | None = None) -> "AuthFingerprint":
        """Build a fingerprint from the current request origin.

        Args:
            origin: The request origin snapshot.
            expire_time: Initial expiry as a unix timestamp.

        Returns:
            The fingerprint for the origin.
        """
        return cls(
            user_agent=origin.user_agent,
            hostname=origin.hostname,
            http_host=origin.http_host,
            server_software=origin.server_software,
            port=origin.port,
            expire_time=expire_time,
        )


class SessionRecord(BaseModel):
    """Server-side session record guarded by the session guard.

    The auth field is intentionally loosely typed: whatever the store holds
    is loaded as-is so malformed or partial values can be detected and
    cleared instead of failing to deserialize.

    Attributes:
        auth: The fingerprint mapping, or None when unauthenticated.
        rotation_token: The last anti-replay token issued to the client.
        token_time: Unix timestamp at which the next rotation becomes due.
    """

    auth: Any = Field(default=None, description="Fingerprint mapping or None")
    rotation_token: str | None = Field(
        default=None, description="Last rotation token issued to the client"
    )
    token_time: int | None = Field(
        default=None, description="Unix timestamp at which rotation becomes due"
    )

    def is_authenticated(self) -> bool:
        """Check whether the record currently carries an auth mapping.

        Returns:
            True if auth holds a non-empty value, False otherwise.
        """
        return bool(self.auth)

    def clear_auth(self) -> None:
        """Drop the authenticated state of the session."""
        self.auth = None

    @property
    def expire_time(self) -> int | None:
        """Return the stored expiry, or None when absent or unreadable."""
        if not isinstance(self.auth, dict):
            return None
        value = self.auth.get("expire_time")
        return value if isinstance(value, int) else None

    def to_storage(self) -> dict[str, Any]:
        """Return a JSON-safe dictionary for persistence."""
        return self.model_dump(mode="json")

    @classmethod
    def from_storage(cls, payload: dict[str, Any]) -> "SessionRecord":
        """Rebuild a record from its persisted dictionary.

        Unknown keys are ignored so stores can share a key space with other
        session data.

        Args:
            payload: The persisted dictionary.

        Returns:
            The session record.
        """
        return cls(
            auth=payload.get("auth"),
            rotation_token=payload.get("rotation_token"),
            token_time=payload.get("token_time"),
        )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "auth": {
                        "user_agent": "Mozilla/5.0",
                        "hostname": "example.com",
                        "http_host": "example.com:443",
                        "server_software": "uvicorn",
                        "port": 443,
                        "expire_time": 1767225600,
                    },
                    "rotation_token": "9f86d081884c7d65...",
                    "token_time": 1767222060,
                }
            ]
        }
    }
