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
"""Fingerprint validation for guarded sessions.

Binds a session to the environment that created it. The auth mapping
written at authentication time is compared field by field against the
current request origin; any drift (another browser, a proxy rewriting the
Host header, a different listening port) clears the session.

Only field names are ever logged, never the stored or presented values.
"""

from collections.abc import Mapping
from typing import Any

import structlog

from session_guard.models.origin import RequestOrigin
from session_guard.models.outcome import GuardOutcome, ValidationResult
from session_guard.models.session import AUTH_REQUIRED_KEYS, SessionRecord

logger = structlog.get_logger(__name__)

# Compared in this order; the first mismatch short-circuits
FINGERPRINT_FIELDS: tuple[str, ...] = (
    "user_agent",
    "hostname",
    "http_host",
    "server_software",
    "port",
)


def missing_auth_key(auth: Any) -> str | None:
    """Return the first required key absent from an auth value.

    Args:
        auth: The stored auth value, of any type.

    Returns:
        The name of the first missing key, "auth" when the value is not a
        mapping at all, or None when the mapping is complete.
    """
    if not isinstance(auth, Mapping):
        return "auth"
    for key in AUTH_REQUIRED_KEYS:
        if key not in auth:
            return key
    return None


def _same_port(stored: Any, current: int) -> bool:
    if isinstance(stored, bool):
        return False
    if isinstance(stored, int):
        return stored == current
    # Stores that round-trip through text may hand the port back as digits
    if isinstance(stored, str) and stored.isascii() and stored.isdigit():
        return int(stored) == current
    return False


def mismatched_field(auth: Mapping[str, Any], origin: RequestOrigin) -> str | None:
    """Return the first fingerprint field that differs from the origin.

    Strings are compared exactly and case-sensitively. The stored port is
    coerced to an integer before a numeric comparison.

    Args:
        auth: A complete auth mapping.
        origin: The current request origin.

    Returns:
        The first mismatching field name, or None if all fields match.
    """
    for name in FINGERPRINT_FIELDS:
        current = getattr(origin, name)
        stored = auth[name]
        if name == "port":
            if not _same_port(stored, current):
                return name
        elif not isinstance(stored, str) or stored != current:
            return name
    return None


def check_origin(record: SessionRecord, origin: RequestOrigin) -> GuardOutcome:
    """Check the request origin and describe the result.

    Same semantics as validate_origin, but returns a GuardOutcome carrying
    the invalidation reason ("fingerprint_malformed" or
    "fingerprint_mismatch").

    Args:
        record: The session record; mutated on failure.
        origin: The current request origin.

    Returns:
        The outcome of the fingerprint check.
    """
    missing = missing_auth_key(record.auth)
    if missing is not None:
        record.clear_auth()
        logger.info("guard.fingerprint.malformed", missing=missing)
        return GuardOutcome.invalidated("fingerprint_malformed")

    field_name = mismatched_field(record.auth, origin)
    if field_name is not None:
        record.clear_auth()
        logger.info("guard.fingerprint.mismatch", field=field_name)
        return GuardOutcome.invalidated("fingerprint_mismatch")

    return GuardOutcome()


def validate_origin(record: SessionRecord, origin: RequestOrigin) -> ValidationResult:
    """Check that a request comes from the origin bound to the session.

    On any failure the record's auth is cleared (fail closed) and the
    session is reported as invalidated. No exception is raised.

    Args:
        record: The session record; mutated on failure.
        origin: The current request origin.

    Returns:
        ValidationResult.OK when every field matches, otherwise
        ValidationResult.INVALIDATED.
    """
    return check_origin(record, origin).result
