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
"""Single source of truth for service version.

This module defines the canonical version string used throughout the
Session Guard service, including:
- Health endpoint responses
- Package metadata (pyproject.toml)
- API documentation

Follows Semantic Versioning (https://semver.org/):
- MAJOR: Breaking changes to the guard protocol or API
- MINOR: New features, backward compatible
- PATCH: Bug fixes, backward compatible
"""

__version__ = "0.1.0"
