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
"""Per-request session guard.

SessionGuard ties the three protocol stages together for one request:

1. Sliding expiration (time based, independent of the origin)
2. Fingerprint validation against the request origin
3. Token validation and rotation, only after the fingerprint passed

Validation failures never raise. They clear the session's auth and are
reported through the returned GuardOutcome, together with the credential
writes and signal headers the transport should apply.
"""

import time
from collections.abc import Callable

import structlog

from session_guard.models.origin import RequestOrigin
from session_guard.models.outcome import GuardOutcome
from session_guard.models.session import AuthFingerprint, SessionRecord
from session_guard.security.context import GuardContext
from session_guard.security.expiration import expired_token_cookie, validate_time
from session_guard.security.fingerprint import check_origin
from session_guard.security.rotation import issue_token, validate_and_rotate

logger = structlog.get_logger(__name__)


def system_clock() -> int:
    """Return the current unix time in whole seconds."""
    return int(time.time())


class SessionGuard:
    """Binds sessions to their origin and rotates their anti-replay token.

    The guard holds no per-session state; everything it reads or changes
    lives in the SessionRecord passed to each call. Callers are responsible
    for loading and saving that record atomically per session identifier.

    Attributes:
        context: The guard configuration.
    """

    def __init__(
        self,
        context: GuardContext | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the guard.

        Args:
            context: Guard configuration. Defaults to GuardContext().
            clock: Source of the current unix time. Defaults to the system clock.
        """
        self.context = context or GuardContext()
        self._clock = clock or system_clock

    def now(self) -> int:
        """Return the current unix time according to the guard's clock."""
        return self._clock()

    def check(
        self,
        record: SessionRecord,
        origin: RequestOrigin,
        client_token: str | None,
        now: int | None = None,
    ) -> GuardOutcome:
        """Run every guard stage for one request.

        Args:
            record: The session record; mutated in place.
            origin: The current request origin.
            client_token: The rotation token presented by the client.
            now: Optional current unix time. Defaults to the guard's clock.

        Returns:
            The merged outcome of all stages that ran.
        """
        if now is None:
            now = self.now()

        outcome = validate_time(
            record,
            now,
            self.context.session_lifetime,
            context=self.context,
            hostname=origin.hostname,
        )
        if not outcome.ok:
            return outcome

        if not record.is_authenticated():
            record.clear_auth()
            return outcome.merge(GuardOutcome.invalidated("unauthenticated"))

        outcome.merge(check_origin(record, origin))
        if not outcome.ok:
            return outcome

        return outcome.merge(
            validate_and_rotate(
                record,
                client_token,
                self.context,
                now,
                hostname=origin.hostname,
            )
        )

    def establish(
        self,
        record: SessionRecord,
        origin: RequestOrigin,
        now: int | None = None,
    ) -> GuardOutcome:
        """Bind a freshly authenticated session to the request origin.

        Called by the authentication step once it has verified the user.
        Writes a complete fingerprint, arms the rotation schedule and issues
        the first token.

        Args:
            record: The session record; mutated in place.
            origin: The origin of the authenticating request.
            now: Optional current unix time. Defaults to the guard's clock.

        Returns:
            A rotated outcome carrying the first token credential.
        """
        if now is None:
            now = self.now()

        fingerprint = AuthFingerprint.from_origin(
            origin, expire_time=now + self.context.session_lifetime
        )
        record.auth = fingerprint.model_dump()
        record.token_time = now + self.context.rotation_interval

        logger.info("guard.session.established", expire_time=fingerprint.expire_time)
        return issue_token(record, self.context, origin.hostname, now)

    def revoke(
        self,
        record: SessionRecord,
        hostname: str | None = None,
        now: int | None = None,
    ) -> GuardOutcome:
        """Explicitly end a session and delete its token credential.

        Args:
            record: The session record; cleared in place.
            hostname: Current host name, used as the credential domain.
            now: Optional current unix time. Defaults to the guard's clock.

        Returns:
            An invalidated outcome deleting the token credential.
        """
        if now is None:
            now = self.now()

        record.clear_auth()
        record.rotation_token = None
        record.token_time = None

        logger.info("guard.session.revoked")
        return GuardOutcome.invalidated(
            "revoked",
            cookies=[expired_token_cookie(self.context, now, hostname)],
        )
