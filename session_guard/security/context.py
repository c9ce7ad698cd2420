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
"""Explicit configuration context for the session guard.

Every guard operation receives its configuration through a GuardContext
instance rather than reading process-wide state, so independent guards
(and tests) never share mutable globals.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from session_guard.config import DEFAULT_TOKEN_COOKIE_MAX_AGE

if TYPE_CHECKING:
    from session_guard.config import Settings

DEFAULT_SESSION_LIFETIME = 3600
DEFAULT_ROTATION_INTERVAL = 60
DEFAULT_TOKEN_COOKIE_NAME = "__auth__"
DEFAULT_ROTATION_HEADER = "X-Token-Rotated"


@dataclass(frozen=True)
class GuardContext:
    """Configuration shared by the guard stages.

    Attributes:
        session_lifetime: Sliding session lifetime in seconds.
        rotation_interval: Minimum seconds between two token rotations.
        token_cookie_name: Name of the persistent token credential.
        token_cookie_lifetime: Lifetime of the token credential in seconds.
        is_production: Whether the token credential is marked secure.
        strict_single_use: Rotate on every validated request.
        rotation_header: Response header announcing a rotation.
    """

    session_lifetime: int = DEFAULT_SESSION_LIFETIME
    rotation_interval: int = DEFAULT_ROTATION_INTERVAL
    token_cookie_name: str = DEFAULT_TOKEN_COOKIE_NAME
    token_cookie_lifetime: int = DEFAULT_TOKEN_COOKIE_MAX_AGE
    is_production: bool = False
    strict_single_use: bool = False
    rotation_header: str = DEFAULT_ROTATION_HEADER

    @classmethod
    def from_settings(cls, settings: "Settings") -> "GuardContext":
        """Build a context from service settings.

        Args:
            settings: The validated service settings.

        Returns:
            The guard context.
        """
        return cls(
            session_lifetime=settings.session_lifetime_seconds,
            rotation_interval=settings.token_rotation_interval_seconds,
            token_cookie_name=settings.token_cookie_name,
            token_cookie_lifetime=settings.token_cookie_max_age_seconds,
            is_production=settings.is_prod,
            strict_single_use=settings.strict_single_use,
            rotation_header=settings.rotation_signal_header,
        )
