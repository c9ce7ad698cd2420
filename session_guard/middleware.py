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
"""ASGI middleware running the session guard on every request.

For each HTTP request carrying a session cookie the middleware, while
holding the session's store lock:

1. loads the session record,
2. runs SessionGuard.check against the request origin and token cookie,
3. saves the record if it already existed.

The outcome and record are exposed to route handlers as
request.state.session_outcome and request.state.session_record. Handlers
may replace session_outcome (for instance after binding or revoking a
session); whatever outcome is present when the response starts is applied
to the response headers.

Implemented as a pure ASGI middleware, like RequestIDMiddleware, so the
outcome survives exception handling in downstream middleware.
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from starlette.requests import Request
from starlette.responses import JSONResponse

from session_guard.logging import get_logger, redact_session_id, session_ref_ctx
from session_guard.models.outcome import GuardOutcome
from session_guard.models.session import SessionRecord
from session_guard.stores.session_store import SessionStoreError
from session_guard.transport import origin_from_request, outcome_header_lines

if TYPE_CHECKING:
    from session_guard.dependencies import DependencyContainer

logger = get_logger(__name__)

DEFAULT_EXEMPT_PATHS = ("/healthz", "/docs", "/redoc", "/openapi.json")

SESSION_OUTCOME_KEY = "session_outcome"
SESSION_RECORD_KEY = "session_record"
SESSION_ID_KEY = "session_id"
GUARD_NOW_KEY = "guard_now"


def record_ttl(session_lifetime: int) -> int:
    """Storage lifetime of a session record.

    Records outlive their auth deadline by one lifetime so an expired
    session is still recognised, and its token credential deleted, when
    the client returns.
    """
    return 2 * session_lifetime


class SessionGuardMiddleware:
    """Middleware that validates the session of every guarded request."""

    def __init__(
        self,
        app: Any,
        container: "DependencyContainer",
        exempt_paths: Iterable[str] = DEFAULT_EXEMPT_PATHS,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            container: Dependency container providing the store and guard.
            exempt_paths: Paths that bypass the guard entirely.
        """
        self.app = app
        self.container = container
        self.exempt_paths = frozenset(exempt_paths)

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Guard the request and attach the outcome to the response.

        Args:
            scope: The ASGI connection scope.
            receive: The receive callable.
            send: The send callable.
        """
        if scope["type"] != "http" or scope.get("path") in self.exempt_paths:
            await self.app(scope, receive, send)
            return

        settings = self.container.settings
        guard = self.container.guard
        store = self.container.session_store

        request = Request(scope)
        now = guard.now()
        state = scope.setdefault("state", {})
        state[GUARD_NOW_KEY] = now

        session_id = request.cookies.get(settings.session_cookie_name)
        if not session_id:
            state[SESSION_ID_KEY] = None
            state[SESSION_RECORD_KEY] = None
            state[SESSION_OUTCOME_KEY] = GuardOutcome.invalidated("no_session")
            await self.app(scope, receive, self._wrap_send(scope, send))
            return

        ref_token = session_ref_ctx.set(redact_session_id(session_id))
        try:
            try:
                async with store.lock(session_id):
                    existing = await store.load(session_id)
                    record = existing or SessionRecord()
                    outcome = guard.check(
                        record,
                        origin_from_request(request, settings.server_software),
                        request.cookies.get(settings.token_cookie_name),
                        now=now,
                    )
                    if existing is not None:
                        await store.save(
                            session_id, record, record_ttl(settings.session_lifetime_seconds)
                        )
            except SessionStoreError as e:
                logger.error("Session store unavailable", error_type=type(e).__name__)
                response = JSONResponse(
                    status_code=503,
                    content={"error": "session_store_unavailable"},
                )
                await response(scope, receive, send)
                return

            if not outcome.ok:
                logger.info("guard.request.invalidated", reason=outcome.reason)

            state[SESSION_ID_KEY] = session_id
            state[SESSION_RECORD_KEY] = record
            state[SESSION_OUTCOME_KEY] = outcome

            await self.app(scope, receive, self._wrap_send(scope, send))
        finally:
            session_ref_ctx.reset(ref_token)

    def _wrap_send(self, scope: dict[str, Any], send: Any) -> Any:
        async def send_with_outcome(message: dict[str, Any]) -> None:
            """Append the final outcome's cookies and headers."""
            if message["type"] == "http.response.start":
                state = scope.get("state", {})
                outcome = state.get(SESSION_OUTCOME_KEY)
                if outcome is not None and (outcome.cookies or outcome.headers):
                    headers = list(message.get("headers", []))
                    headers.extend(outcome_header_lines(outcome, state[GUARD_NOW_KEY]))
                    message["headers"] = headers
            await send(message)

        return send_with_outcome
