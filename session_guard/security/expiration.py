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
"""Sliding expiration of guarded sessions.

Every validated request pushes the session deadline forward by the
configured lifetime, but only while the previous deadline has not lapsed.
An expired session is cleared and its token credential deleted.
"""

from collections.abc import MutableMapping

import structlog

from session_guard.models.outcome import CookieDirective, GuardOutcome
from session_guard.models.session import SessionRecord
from session_guard.security.context import DEFAULT_SESSION_LIFETIME, GuardContext

logger = structlog.get_logger(__name__)

# How far in the past a deleted credential's expiry is set
CREDENTIAL_PURGE_OFFSET = 60 * 60 * 30


def expired_token_cookie(
    context: GuardContext, now: int, hostname: str | None = None
) -> CookieDirective:
    """Build the directive that deletes the client's token credential."""
    return CookieDirective(
        name=context.token_cookie_name,
        value="",
        expires=now - CREDENTIAL_PURGE_OFFSET,
        path="/",
        domain=hostname or None,
        secure=context.is_production,
        http_only=True,
    )


def validate_time(
    record: SessionRecord,
    now: int,
    configured_lifetime: int = DEFAULT_SESSION_LIFETIME,
    context: GuardContext | None = None,
    hostname: str | None = None,
) -> GuardOutcome:
    """Slide the session deadline forward or expire the session.

    Args:
        record: The session record; auth.expire_time is updated in place.
        now: Current unix time.
        configured_lifetime: Session lifetime in seconds.
        context: The guard configuration, for the credential name.
        hostname: Current host name, used as the credential domain.

    Returns:
        An OK outcome when the session is unauthenticated or still alive,
        otherwise an invalidated outcome deleting the token credential.
    """
    if not record.is_authenticated():
        return GuardOutcome()

    auth = record.auth
    if not isinstance(auth, MutableMapping):
        record.clear_auth()
        logger.info("guard.expiry.malformed")
        return GuardOutcome.invalidated("fingerprint_malformed")

    lifetime_deadline = now + configured_lifetime

    expire_time = auth.get("expire_time")
    if expire_time is None:
        expire_time = lifetime_deadline
        auth["expire_time"] = expire_time
    elif isinstance(expire_time, bool) or not isinstance(expire_time, int):
        record.clear_auth()
        logger.info("guard.expiry.malformed")
        return GuardOutcome.invalidated("fingerprint_malformed")

    elapsed = lifetime_deadline - expire_time
    remaining = (lifetime_deadline - now) - elapsed

    if remaining > 0:
        # Never moves backward, even if the clock or lifetime shrinks
        auth["expire_time"] = max(expire_time, lifetime_deadline)
        return GuardOutcome()

    record.clear_auth()
    logger.info("guard.expiry.expired", overdue_seconds=-remaining)
    return GuardOutcome.invalidated(
        "expired",
        cookies=[expired_token_cookie(context or GuardContext(), now, hostname)],
    )
