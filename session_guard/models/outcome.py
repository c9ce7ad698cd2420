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
"""Guard outcome types.

The protocol functions never touch ambient request or response state.
Instead they return explicit values describing the validation result, the
persistent credentials to write or delete, and the signal headers to emit.
"""

from dataclasses import dataclass, field
from enum import Enum


class ValidationResult(str, Enum):
    """Result of a guard check."""

    OK = "ok"
    INVALIDATED = "invalidated"


@dataclass(frozen=True)
class CookieDirective:
    """A request to write or delete a persistent client credential.

    A directive whose expires lies in the past asks the transport to delete
    the credential.
    """

    name: str
    value: str
    expires: int
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    http_only: bool = True

    def max_age(self, now: int) -> int:
        """Return the remaining lifetime in seconds, zero when expired."""
        return max(self.expires - now, 0)

    def is_deletion(self, now: int) -> bool:
        """Check whether this directive deletes the credential."""
        return self.expires <= now


@dataclass
class GuardOutcome:
    """Result of running one or more guard stages against a session.

    Attributes:
        result: Whether the session is still trusted.
        rotated: Whether a new rotation token was issued.
        reason: Machine-readable invalidation reason, None when valid.
        cookies: Credential writes and deletions to apply.
        headers: Outbound signal headers to apply.
    """

    result: ValidationResult = ValidationResult.OK
    rotated: bool = False
    reason: str | None = None
    cookies: list[CookieDirective] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Check whether the session is still trusted."""
        return self.result is ValidationResult.OK

    @classmethod
    def invalidated(
        cls, reason: str, cookies: list[CookieDirective] | None = None
    ) -> "GuardOutcome":
        """Build an invalidated outcome."""
        return cls(
            result=ValidationResult.INVALIDATED,
            reason=reason,
            cookies=list(cookies or []),
        )

    def merge(self, other: "GuardOutcome") -> "GuardOutcome":
        """Fold a later stage's outcome into this one.

        The first invalidation reason wins; cookies and headers accumulate.

        Args:
            other: The outcome of the later stage.

        Returns:
            This outcome, updated in place.
        """
        if other.result is ValidationResult.INVALIDATED:
            self.result = ValidationResult.INVALIDATED
            if self.reason is None:
                self.reason = other.reason
        self.rotated = self.rotated or other.rotated
        self.cookies.extend(other.cookies)
        self.headers.update(other.headers)
        return self
