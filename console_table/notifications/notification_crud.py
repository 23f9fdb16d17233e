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
"""Logic for turning request outcomes into user notifications."""

from typing import Optional, Protocol

from loguru import logger as log

from console_table.enums import NotificationLevel
from console_table.errors import (
    ApiError,
    DecodeError,
    HttpError,
    NetworkError,
    error_detail,
)
from console_table.notifications.notification_schemas import Notification


class Notifier(Protocol):
    """Anything that can display a notification to the user."""

    def notify(self, notification: Notification) -> None:
        """Display one notification."""


class LogNotifier:
    """Default notifier, writes notifications to the log."""

    def notify(self, notification: Notification) -> None:
        """Log at a level matching the notification."""
        level = {
            NotificationLevel.SUCCESS: "SUCCESS",
            NotificationLevel.INFO: "INFO",
            NotificationLevel.WARNING: "WARNING",
            NotificationLevel.ERROR: "ERROR",
        }[notification.level]
        log.log(level, f"{notification.title}: {notification.text}")


class NotificationLog:
    """Collects notifications in memory, for headless use and tests."""

    def __init__(self):
        """Start with no notifications."""
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        """Record the notification."""
        self.notifications.append(notification)

    def of_level(self, level: NotificationLevel) -> list[Notification]:
        """All recorded notifications of one level."""
        return [item for item in self.notifications if item.level == level]

    @property
    def last(self) -> Optional[Notification]:
        """The most recent notification."""
        return self.notifications[-1] if self.notifications else None


def _retry_wait_text(body) -> str:
    """Describe how long to wait after a 429 response."""
    retry_after = None
    if isinstance(body, dict):
        retry_after = body.get("retry_after_seconds") or body.get("retry_after")
    try:
        seconds = int(retry_after)
    except (TypeError, ValueError):
        return "a moment"
    if seconds > 60:
        return f"{-(-seconds // 60)} minute(s)"
    return f"{seconds} second(s)"


def _http_error_text(error: HttpError) -> tuple[NotificationLevel, str, str]:
    """Title and description for an HTTP status."""
    status = error.status_code
    if error.body is None:
        title, description = "Error", error.message
    else:
        title, description = error_detail(error.body)
    level = NotificationLevel.ERROR

    if status == 401:
        title = "Authentication Failed"
        description = description or "Invalid credentials. Please try again."
    elif status == 403:
        title = "Access Denied"
        description = (
            description or "You do not have permission to perform this action."
        )
    elif status == 404:
        title = "Not Found"
        description = description or "The requested resource was not found."
    elif status == 429:
        level = NotificationLevel.WARNING
        title = "Too Many Requests"
        description = (
            "You've made too many requests. "
            f"Please wait {_retry_wait_text(error.body)} before trying again."
        )
    elif status == 500:
        title = "Server Error"
        description = (
            "An internal server error occurred. "
            "Please try again later or contact support."
        )
    elif status in (502, 503):
        title = "Service Unavailable"
        description = "The service is temporarily unavailable. Please try again later."
    elif status == 504:
        title = "Gateway Timeout"
        description = "The server took too long to respond. Please try again."
    elif status and status >= 500:
        title = "Server Error"
        description = "A server error occurred. Please try again later."

    return level, title, description


def error_notification(error: ApiError, action: Optional[str] = None) -> Notification:
    """Build the notification for a failed request.

    Args:
        error (ApiError): The failure.
        action (str): The attempted action, e.g. "update status". When
            given, the description starts with "Failed to <action>".
    """
    level = NotificationLevel.ERROR
    if isinstance(error, NetworkError):
        title = "Request Timeout" if error.timeout else "Network Error"
        description = error.message
    elif isinstance(error, HttpError):
        level, title, description = _http_error_text(error)
    elif isinstance(error, DecodeError):
        title, description = "Error", error.message
    else:
        title, description = "Error", error.message

    if action:
        description = f"Failed to {action}: {description}"
    return Notification(level=level, title=title, description=description)


def success_notification(message: str) -> Notification:
    """Confirmation returned by the server after a write."""
    return Notification(level=NotificationLevel.SUCCESS, title=message)


def warning_notification(warning: str) -> Notification:
    """Warning returned by the server alongside a success."""
    return Notification(
        level=NotificationLevel.WARNING, title="Warning", description=warning
    )
