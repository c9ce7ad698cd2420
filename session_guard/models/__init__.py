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
"""Session Guard models.

This module exports the data contracts shared by the guard protocol,
the session stores and the HTTP adapter.
"""

from session_guard.models.origin import RequestOrigin
from session_guard.models.outcome import CookieDirective, GuardOutcome, ValidationResult
from session_guard.models.session import AUTH_REQUIRED_KEYS, AuthFingerprint, SessionRecord

__all__ = [
    "AUTH_REQUIRED_KEYS",
    "AuthFingerprint",
    "CookieDirective",
    "GuardOutcome",
    "RequestOrigin",
    "SessionRecord",
    "ValidationResult",
]
