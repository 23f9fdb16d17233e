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
"""Errors raised when talking to the console backend.

Every failure is an `ApiError`, so callers can catch one type:

- `NetworkError`: no response was received (connection refused, timeout).
- `HttpError`: the server answered with a non-2xx status.
- `SessionInvalidError`: a 401 / 403, the session must be discarded.
- `DecodeError`: the body could not be parsed or matched no known shape.
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from console_table.listing.listing_schemas import PageResult

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


class ApiError(Exception):
    """Base class for a failed request to the backend."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        method: Optional[str] = None,
    ):
        """Store the request context alongside the message."""
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.url = url
        self.method = method

    def __str__(self) -> str:
        """Prefix the message with the status code, if any."""
        if self.status_code:
            return f"({self.status_code}) {self.message}"
        return self.message


class NetworkError(ApiError):
    """The request never produced a response."""

    def __init__(self, message: str, timeout: bool = False, **kwargs):
        """Flag timeouts separately from refused connections."""
        super().__init__(message, **kwargs)
        self.timeout = timeout


class HttpError(ApiError):
    """The server responded with an error status."""

    def __init__(self, message: str, status_code: int, body: Any = None, **kwargs):
        """Keep the decoded error body for richer notifications."""
        super().__init__(message, status_code=status_code, **kwargs)
        self.body = body


class SessionInvalidError(HttpError):
    """The credential was rejected, the caller must log out.

    Never retried.
    """


class DecodeError(ApiError):
    """The response body was not understood.

    `result` holds the empty page to display in place of the data.
    """

    def __init__(self, message: str, result: Optional["PageResult"] = None, **kwargs):
        """Attach the fallback empty result."""
        super().__init__(message, **kwargs)
        self.result = result


def _join_field_errors(errors: dict) -> str:
    """Flatten `{"field": ["msg", ...]}` into one line per field."""
    lines = []
    for field, messages in errors.items():
        if isinstance(messages, list):
            lines.append(f"{field}: {', '.join(str(msg) for msg in messages)}")
        else:
            lines.append(f"{field}: {messages}")
    return "\n".join(lines)


def error_detail(body: Any) -> tuple[str, str]:
    """Extract a (title, description) pair from an error response body.

    The backend is inconsistent, so several conventions are accepted,
    checked in order: plain string, `detail`, `error` (string or a field
    map), `message`, then a bare field validation map.
    """
    if isinstance(body, str) and body:
        return "Error", body

    if not isinstance(body, dict):
        return "Error", GENERIC_ERROR_MESSAGE

    if body.get("detail"):
        return "Error", str(body["detail"])

    error = body.get("error")
    if error:
        if isinstance(error, str):
            return "Error", error
        if isinstance(error, dict):
            return "Validation Error", _join_field_errors(error)

    if body.get("message"):
        return "Error", str(body["message"])

    field_errors = {key: value for key, value in body.items() if key != "status"}
    if field_errors:
        return "Validation Error", _join_field_errors(field_errors)

    return "Error", GENERIC_ERROR_MESSAGE
