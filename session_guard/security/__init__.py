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
"""Session Guard security package.

This module exports the session-binding and token rotation protocol:
- Fingerprint validation of the request origin
- Single-use token validation and rotation
- Sliding session expiration
- The SessionGuard orchestrating all three per request
"""

from session_guard.security.context import GuardContext
from session_guard.security.expiration import expired_token_cookie, validate_time
from session_guard.security.fingerprint import (
    FINGERPRINT_FIELDS,
    check_origin,
    mismatched_field,
    validate_origin,
)
from session_guard.security.guard import SessionGuard, system_clock
from session_guard.security.rotation import (
    TOKEN_BYTES,
    generate_rotation_token,
    is_rotation_due,
    issue_token,
    tokens_match,
    validate_and_rotate,
)

__all__ = [
    "FINGERPRINT_FIELDS",
    "TOKEN_BYTES",
    "GuardContext",
    "SessionGuard",
    "check_origin",
    "expired_token_cookie",
    "generate_rotation_token",
    "is_rotation_due",
    "issue_token",
    "mismatched_field",
    "system_clock",
    "tokens_match",
    "validate_and_rotate",
    "validate_origin",
    "validate_time",
]
