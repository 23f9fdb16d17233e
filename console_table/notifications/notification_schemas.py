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
"""Schemas for user facing notifications."""

from dataclasses import dataclass
from typing import Optional

from console_table.enums import NotificationLevel


@dataclass(frozen=True)
class Notification:
    """A message for the user, e.g. a toast."""

    level: NotificationLevel
    title: str
    description: Optional[str] = None

    @property
    def text(self) -> str:
        """The line displayed, the description when there is one."""
        return self.description or self.title
