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
"""Anti-replay token rotation.

A high-entropy token is shared between the server-side session and a
persistent client credential. Every request must present the current
token; once the rotation interval has elapsed the token is replaced and the
value held by the client becomes void.

Tokens are compared in constant time and are never logged or echoed back
in signal headers.
"""

import hashlib
import hmac
import secrets

import structlog

from session_guard.models.outcome import CookieDirective, GuardOutcome
from session_guard.models.session import SessionRecord
from session_guard.security.context import DEFAULT_ROTATION_INTERVAL, GuardContext

logger = structlog.get_logger(__name__)

# Entropy of a rotation token; hex encoding doubles the length
TOKEN_BYTES = 128

GUARD_SIGNAL_HEADER = "X-Session-Guard"


def generate_rotation_token() -> str:
    """Generate a new rotation token.

    Returns:
        128 cryptographically secure random bytes, hex-encoded.
    """
    return secrets.token_hex(TOKEN_BYTES)


def token_digest(token: str) -> str:
    """Return a short SHA-256 reference to a token, safe to expose."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


def tokens_match(client_token: str | None, stored_token: str | None) -> bool:
    """Compare a presented token with the stored one in constant time.

    Args:
        client_token: The token presented by the client.
        stored_token: The token stored in the session.

    Returns:
        True only for an exact byte-for-byte match.
    """
    if not client_token or not stored_token:
        return False
    return hmac.compare_digest(client_token.encode("utf-8"), stored_token.encode("utf-8"))


def is_rotation_due(
    record: SessionRecord, now: int, interval: int = DEFAULT_ROTATION_INTERVAL
) -> bool:
    """Decide whether the rotation token should be replaced.

    The first call only arms the schedule. Once the deadline has passed the
    schedule is re-armed immediately, so at most one rotation happens per
    interval.

    Args:
        record: The session record; token_time is updated in place.
        now: Current unix time.
        interval: Seconds between two rotations.

    Returns:
        True if a rotation is due.
    """
    if record.token_time is None:
        record.token_time = now + interval
        return False

    remaining = record.token_time - now
    if remaining < 0:
        record.token_time = now + interval
        return True

    return False


def token_cookie(
    context: GuardContext, token: str, hostname: str | None, now: int
) -> CookieDirective:
    """Build the directive that hands a token to the client."""
    return CookieDirective(
        name=context.token_cookie_name,
        value=token,
        expires=now + context.token_cookie_lifetime,
        path="/",
        domain=hostname or None,
        secure=context.is_production,
        http_only=True,
    )


def issue_token(
    record: SessionRecord, context: GuardContext, hostname: str | None, now: int
) -> GuardOutcome:
    """Generate, store and hand out a new rotation token.

    Args:
        record: The session record; rotation_token is replaced.
        context: The guard configuration.
        hostname: Current host name, used as the credential domain.
        now: Current unix time.

    Returns:
        A rotated outcome with the credential and signal headers to emit.
    """
    token = generate_rotation_token()
    record.rotation_token = token

    logger.info("guard.token.rotated", token_ref=token_digest(token))

    return GuardOutcome(
        rotated=True,
        cookies=[token_cookie(context, token, hostname, now)],
        headers={
            context.rotation_header: token_digest(token),
            GUARD_SIGNAL_HEADER: "rotated",
        },
    )


def validate_and_rotate(
    record: SessionRecord,
    client_token: str | None,
    context: GuardContext,
    now: int,
    hostname: str | None = None,
) -> GuardOutcome:
    """Validate the client token and rotate it when due.

    Must only be called after the fingerprint check succeeded. A missing or
    mismatching token clears the session's auth. A matching token is kept
    until the rotation interval elapses, unless strict single-use mode is
    enabled.

    Args:
        record: The session record.
        client_token: The token presented by the client, if any.
        context: The guard configuration.
        now: Current unix time.
        hostname: Current host name, used as the credential domain.

    Returns:
        The outcome of the token check.
    """
    if not client_token:
        record.clear_auth()
        logger.info("guard.token.missing")
        return GuardOutcome.invalidated("token_missing")

    if not tokens_match(client_token, record.rotation_token):
        record.clear_auth()
        logger.info("guard.token.mismatch")
        return GuardOutcome.invalidated("token_mismatch")

    # Evaluated first so the schedule is kept even in strict mode
    due = is_rotation_due(record, now, context.rotation_interval)

    if due or context.strict_single_use:
        return issue_token(record, context, hostname, now)

    return GuardOutcome()
