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
"""Session routes for the Session Guard service.

This module provides:
- GET /v1/session: status of the guarded session (401 when not trusted)
- POST /v1/session/bind: bind a fresh session to the caller's origin
  (development and testing only, gated by SESSION_BIND_ENABLED)
- POST /v1/session/revoke: end the current session

The guard itself runs in SessionGuardMiddleware; these handlers only read
or replace the outcome it left in request.state.
"""

import secrets

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from session_guard.dependencies import DependencyContainer
from session_guard.logging import redact_session_id
from session_guard.middleware import (
    GUARD_NOW_KEY,
    SESSION_ID_KEY,
    SESSION_OUTCOME_KEY,
    SESSION_RECORD_KEY,
    record_ttl,
)
from session_guard.models.outcome import CookieDirective, GuardOutcome
from session_guard.models.session import SessionRecord
from session_guard.stores.session_store import SessionStoreError
from session_guard.transport import origin_from_request

logger = structlog.get_logger(__name__)


class SessionStatusResponse(BaseModel):
    """Response body for GET /v1/session."""

    authenticated: bool = Field(..., description="Whether the session is trusted.")
    rotated: bool = Field(..., description="Whether this request rotated the token.")
    expire_time: int | None = Field(
        default=None, description="Unix timestamp the session expires at."
    )


class BindSessionResponse(BaseModel):
    """Response body for POST /v1/session/bind."""

    status: str = Field(..., description="Operation status.")
    expire_time: int = Field(..., description="Unix timestamp the session expires at.")


class RevokeSessionResponse(BaseModel):
    """Response body for POST /v1/session/revoke."""

    status: str = Field(..., description="Operation status.")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type.")
    message: str = Field(..., description="Human-readable error message.")


def require_session(request: Request) -> SessionRecord:
    """FastAPI dependency returning the trusted session record.

    Raises:
        HTTPException: 401 when the guard did not trust the session. The
            reason is logged but never returned to the client.
    """
    outcome: GuardOutcome | None = getattr(request.state, SESSION_OUTCOME_KEY, None)
    record: SessionRecord | None = getattr(request.state, SESSION_RECORD_KEY, None)

    if outcome is None or not outcome.ok or record is None:
        raise HTTPException(
            status_code=401,
            detail={"error": "session_invalid", "message": "Authentication required"},
        )
    return record


def _session_cookie(
    container: DependencyContainer, value: str, expires: int, hostname: str | None
) -> CookieDirective:
    settings = container.settings
    return CookieDirective(
        name=settings.session_cookie_name,
        value=value,
        expires=expires,
        path="/",
        domain=hostname or None,
        secure=settings.is_prod,
        http_only=True,
    )


def create_session_router(container: DependencyContainer) -> APIRouter:
    """Create the session router.

    Args:
        container: The dependency container providing the store and guard.

    Returns:
        A FastAPI APIRouter with the session endpoints.
    """
    router = APIRouter(prefix="/v1/session", tags=["session"])

    @router.get(
        "",
        response_model=SessionStatusResponse,
        responses={401: {"description": "Session not trusted", "model": ErrorResponse}},
        summary="Get the guarded session status",
    )
    async def session_status(
        request: Request,
        record: SessionRecord = Depends(require_session),
    ) -> SessionStatusResponse:
        """Report the state of the current session after guard validation."""
        outcome: GuardOutcome = getattr(request.state, SESSION_OUTCOME_KEY)
        return SessionStatusResponse(
            authenticated=True,
            rotated=outcome.rotated,
            expire_time=record.expire_time,
        )

    @router.post(
        "/bind",
        response_model=BindSessionResponse,
        status_code=201,
        responses={
            404: {"description": "Binding disabled", "model": ErrorResponse},
            503: {"description": "Session store unavailable", "model": ErrorResponse},
        },
        summary="Bind a new session to the caller's origin",
        description=(
            "Creates a fresh session bound to the request origin and issues the first "
            "rotation token. Stands in for an external authentication step; "
            "only available when SESSION_BIND_ENABLED is set."
        ),
    )
    async def bind_session(request: Request) -> BindSessionResponse:
        """Create and bind a new session."""
        settings = container.settings
        if not settings.session_bind_enabled:
            raise HTTPException(
                status_code=404,
                detail={"error": "not_found", "message": "Not Found"},
            )

        guard = container.guard
        store = container.session_store
        now = getattr(request.state, GUARD_NOW_KEY, None) or guard.now()
        origin = origin_from_request(request, settings.server_software)

        # Always a fresh identifier, never one supplied by the client
        session_id = secrets.token_urlsafe(32)
        previous_id: str | None = getattr(request.state, SESSION_ID_KEY, None)
        record = SessionRecord()

        try:
            async with store.lock(session_id):
                outcome = guard.establish(record, origin, now=now)
                await store.save(session_id, record, record_ttl(settings.session_lifetime_seconds))
            if previous_id:
                await store.delete(previous_id)
        except SessionStoreError as e:
            logger.error("session.bind.store_unavailable", error_type=type(e).__name__)
            raise HTTPException(
                status_code=503,
                detail={"error": "session_store_unavailable", "message": "Try again later"},
            )

        outcome.cookies.append(
            _session_cookie(
                container,
                session_id,
                now + settings.token_cookie_max_age_seconds,
                origin.hostname,
            )
        )
        setattr(request.state, SESSION_OUTCOME_KEY, outcome)

        logger.info("session.bound", session_ref=redact_session_id(session_id))
        return BindSessionResponse(status="bound", expire_time=record.expire_time or 0)

    @router.post(
        "/revoke",
        response_model=RevokeSessionResponse,
        responses={503: {"description": "Session store unavailable", "model": ErrorResponse}},
        summary="Revoke the current session",
        description=(
            "Clears the current session and deletes its credentials. "
            "Idempotent: revoking without a session still succeeds."
        ),
    )
    async def revoke_session(request: Request) -> RevokeSessionResponse:
        """Revoke the current session."""
        guard = container.guard
        store = container.session_store
        now = getattr(request.state, GUARD_NOW_KEY, None) or guard.now()
        hostname = request.url.hostname
        session_id: str | None = getattr(request.state, SESSION_ID_KEY, None)

        record = SessionRecord()
        if session_id:
            try:
                async with store.lock(session_id):
                    record = await store.load(session_id) or record
                    await store.delete(session_id)
            except SessionStoreError as e:
                logger.error("session.revoke.store_unavailable", error_type=type(e).__name__)
                raise HTTPException(
                    status_code=503,
                    detail={"error": "session_store_unavailable", "message": "Try again later"},
                )

        outcome = guard.revoke(record, hostname=hostname, now=now)
        outcome.cookies.append(_session_cookie(container, "", 0, hostname))
        setattr(request.state, SESSION_OUTCOME_KEY, outcome)

        logger.info("session.revoked", had_session=bool(session_id))
        return RevokeSessionResponse(status="revoked")

    return router
