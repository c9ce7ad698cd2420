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
"""Starlette transport adapter for the session guard.

Translates between HTTP requests/responses and the guard's explicit
values: builds a RequestOrigin from the incoming request, and applies the
cookie directives and signal headers of a GuardOutcome to a response.
"""

from starlette.requests import HTTPConnection
from starlette.responses import Response

from session_guard.models.origin import RequestOrigin
from session_guard.models.outcome import CookieDirective, GuardOutcome

_DEFAULT_PORTS = {"http": 80, "https": 443, "ws": 80, "wss": 443}


def request_port(request: HTTPConnection) -> int:
    """Return the port the server accepted the request on.

    Uses the ASGI server address when available, then the URL port, then
    the scheme's default port.
    """
    server = request.scope.get("server")
    if server and len(server) > 1 and server[1] is not None:
        return int(server[1])
    if request.url.port is not None:
        return request.url.port
    return _DEFAULT_PORTS.get(request.url.scheme, 80)


def origin_from_request(request: HTTPConnection, server_software: str) -> RequestOrigin:
    """Build the origin snapshot of a request.

    Args:
        request: The incoming request.
        server_software: Server software identifier from configuration.

    Returns:
        The request origin.
    """
    return RequestOrigin(
        user_agent=request.headers.get("user-agent", ""),
        hostname=request.url.hostname or "",
        http_host=request.headers.get("host", ""),
        server_software=server_software,
        port=request_port(request),
    )


def apply_cookie(response: Response, cookie: CookieDirective, now: int) -> None:
    """Write or delete one persistent credential on a response."""
    if cookie.is_deletion(now):
        response.delete_cookie(
            cookie.name,
            path=cookie.path,
            domain=cookie.domain,
            secure=cookie.secure,
            httponly=cookie.http_only,
        )
        return

    max_age = cookie.max_age(now)
    response.set_cookie(
        cookie.name,
        cookie.value,
        max_age=max_age,
        expires=max_age,
        path=cookie.path,
        domain=cookie.domain,
        secure=cookie.secure,
        httponly=cookie.http_only,
    )


def apply_outcome(response: Response, outcome: GuardOutcome, now: int) -> Response:
    """Apply every cookie directive and signal header of an outcome.

    Args:
        response: The response to modify.
        outcome: The guard outcome.
        now: Current unix time, used to compute cookie lifetimes.

    Returns:
        The same response, for chaining.
    """
    for cookie in outcome.cookies:
        apply_cookie(response, cookie, now)
    for name, value in outcome.headers.items():
        response.headers[name] = value
    return response


def outcome_header_lines(outcome: GuardOutcome, now: int) -> list[tuple[bytes, bytes]]:
    """Render an outcome as raw ASGI header lines."""
    carrier = Response()
    apply_outcome(carrier, outcome, now)
    return [
        (name, value)
        for name, value in carrier.raw_headers
        if name not in (b"content-length", b"content-type")
    ]
