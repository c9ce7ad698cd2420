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
"""Tests for the Starlette transport adapter."""

from starlette.requests import Request
from starlette.responses import Response

from session_guard.models.outcome import CookieDirective, GuardOutcome
from session_guard.transport import (
    apply_outcome,
    origin_from_request,
    outcome_header_lines,
    request_port,
)

NOW = 1_700_000_000


def make_request(
    headers: dict[str, str] | None = None,
    server: tuple[str, int | None] | None = ("guard.example.com", 8443),
    scheme: str = "https",
) -> Request:
    """Build a bare request from an ASGI scope."""
    raw_headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    ]
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": scheme,
            "path": "/",
            "raw_path": b"/",
            "query_string": b"",
            "headers": raw_headers,
            "server": server,
        }
    )


class TestRequestOrigin:
    """Tests for building the request origin."""

    def test_origin_fields(self) -> None:
        """Test that every fingerprint field is read from the request."""
        request = make_request(
            headers={"Host": "guard.example.com:8443", "User-Agent": "UA1"},
        )

        origin = origin_from_request(request, "uvicorn")

        assert origin.user_agent == "UA1"
        assert origin.hostname == "guard.example.com"
        assert origin.http_host == "guard.example.com:8443"
        assert origin.server_software == "uvicorn"
        assert origin.port == 8443

    def test_missing_user_agent_is_empty(self) -> None:
        """Test that an absent User-Agent becomes an empty string."""
        origin = origin_from_request(make_request(headers={"Host": "h"}), "uvicorn")

        assert origin.user_agent == ""

    def test_port_falls_back_to_url_and_scheme(self) -> None:
        """Test port resolution without a server address."""
        with_host_port = make_request(headers={"Host": "h:9000"}, server=None)
        https_default = make_request(headers={"Host": "h"}, server=None)
        http_default = make_request(headers={"Host": "h"}, server=None, scheme="http")

        assert request_port(with_host_port) == 9000
        assert request_port(https_default) == 443
        assert request_port(http_default) == 80


class TestApplyOutcome:
    """Tests for writing outcomes to responses."""

    def test_sets_cookie_and_headers(self) -> None:
        """Test that a token cookie and signal headers are written."""
        outcome = GuardOutcome(
            rotated=True,
            cookies=[CookieDirective(name="__auth__", value="tok", expires=NOW + 600)],
            headers={"X-Token-Rotated": "abc"},
        )

        response = apply_outcome(Response(), outcome, NOW)

        cookie = response.headers["set-cookie"]
        assert cookie.startswith("__auth__=tok")
        assert "Max-Age=600" in cookie
        assert "HttpOnly" in cookie
        assert response.headers["x-token-rotated"] == "abc"

    def test_past_expiry_deletes_cookie(self) -> None:
        """Test that an expiry in the past becomes a deletion."""
        outcome = GuardOutcome.invalidated(
            "expired",
            cookies=[CookieDirective(name="__auth__", value="", expires=NOW - 108000)],
        )

        response = apply_outcome(Response(), outcome, NOW)

        assert "Max-Age=0" in response.headers["set-cookie"]

    def test_header_lines_exclude_body_headers(self) -> None:
        """Test that rendered lines only carry the outcome's headers."""
        outcome = GuardOutcome(
            cookies=[CookieDirective(name="__auth__", value="tok", expires=NOW + 60)],
            headers={"X-Session-Guard": "rotated"},
        )

        names = [name for name, _ in outcome_header_lines(outcome, NOW)]

        assert b"set-cookie" in names
        assert b"x-session-guard" in names
        assert b"content-length" not in names
