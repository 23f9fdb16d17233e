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
"""Enum definitions to translate values into human enum strings."""

from enum import Enum, StrEnum


class MutationKind(StrEnum, Enum):
    """The write operations a table screen can perform on its records."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    STATUS_TOGGLE = "STATUS_TOGGLE"

    @property
    def label(self) -> str:
        """Verb used in user facing messages."""
        return {
            MutationKind.CREATE: "create record",
            MutationKind.UPDATE: "update record",
            MutationKind.DELETE: "delete record",
            MutationKind.STATUS_TOGGLE: "update status",
        }[self]


class RefreshPolicy(StrEnum, Enum):
    """Which page to reload after a successful mutation.

    `FIRST_PAGE` -- New rows sort to the top, reload page 1.
    `CURRENT_PAGE` -- Reload whatever page is displayed.
    """

    FIRST_PAGE = "FIRST_PAGE"
    CURRENT_PAGE = "CURRENT_PAGE"


class LoadState(StrEnum, Enum):
    """Lifecycle of the data displayed by a table screen."""

    IDLE = "IDLE"
    LOADING = "LOADING"
    LOADED = "LOADED"
    FAILED = "FAILED"


class ResponseShape(StrEnum, Enum):
    """Collection conventions returned by the backend.

    `CONTENT` -- `{"content": [...], "totalElements": n}`
    `ARRAY` -- a bare, unpaginated JSON array.
    `DATA` -- `{"data": [...], "total": n}`
    `UNKNOWN` -- none of the above matched.
    """

    CONTENT = "CONTENT"
    ARRAY = "ARRAY"
    DATA = "DATA"
    UNKNOWN = "UNKNOWN"


class NotificationLevel(StrEnum, Enum):
    """Severity of a message shown to the user."""

    SUCCESS = "SUCCESS"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
