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
"""Request origin model.

A RequestOrigin is an ephemeral snapshot of the attributes that identify
where a request came from and which server endpoint handled it. It is
derived per request and never persisted.
"""

from pydantic import BaseModel, ConfigDict, Field


class RequestOrigin(BaseModel):
    """Snapshot of request-origin attributes.

    Attributes:
        user_agent: The User-Agent header value.
        hostname: Host name the request was served for.
        http_host: Raw HTTP Host header.
        server_software: Server software identifier.
        port: Listening port that served the request.
    """

    model_config = ConfigDict(frozen=True)

    user_agent: str = Field(default="", description="User-Agent header value")
    hostname: str = Field(..., description="Host name the request was served for")
    http_host: str = Field(..., description="Raw HTTP Host header")
    server_software: str = Field(..., description="Server software identifier")
    port: int = Field(..., ge=0, le=65535, description="Listening port")
