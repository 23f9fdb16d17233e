# Copyright (c) Humanitarian OpenStreetMap Team
#
# This file is part of console-table.
#
#     console-table is free software: you can redistribute it and/or modify
#     it under the terms of the GNU General Public License as published by
#     the Free Software Foundation, either version 3 of the License, or
#     (at your option) any later version.
#
#     console-table is distributed in the hope that it will be useful,
#     but WITHOUT ANY WARRANTY; without even the implied warranty of
#     MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#     GNU General Public License for more details.
#
#     You should have received a copy of the GNU General Public License
#     along with console-table.  If not, see <https:#www.gnu.org/licenses/>.
#
"""Schemas for responses returned by the transport."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

TokenProvider = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


@dataclass
class ApiResponse:
    """A decoded 2xx response.

    `body` is the parsed JSON, the raw text if it was not JSON,
    or None for an empty body.
    """

    status: int
    body: Any
    method: str
    url: str

    @property
    def message(self) -> Optional[str]:
        """Server supplied confirmation message, if present."""
        if isinstance(self.body, dict) and self.body.get("message"):
            return str(self.body["message"])
        return None

    @property
    def warning(self) -> Optional[str]:
        """Server supplied warning, returned alongside a success."""
        if isinstance(self.body, dict) and self.body.get("warning"):
            return str(self.body["warning"])
        return None
