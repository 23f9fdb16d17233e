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
"""Schemas for the state of one table screen."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import field_validator

from console_table.config import settings
from console_table.endpoints import ResourceEndpoints
from console_table.enums import LoadState
from console_table.errors import ApiError
from console_table.listing.listing_schemas import PageResult, Query
from console_table.notifications.notification_crud import error_notification


class ControllerConfig(BaseModel):
    """Everything that differs between two table screens."""

    model_config = ConfigDict(frozen=True)

    endpoint: str
    # Per-action URLs, when they differ from `endpoint`
    resource: Optional[ResourceEndpoints] = None
    page_size: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_SIZE, gt=0)
    page_size_options: list[int] = Field(
        default_factory=lambda: list(settings.PAGE_SIZE_OPTIONS)
    )
    row_key: str = Field(default_factory=lambda: settings.DEFAULT_ROW_KEY)
    initial_filters: dict[str, Any] = Field(default_factory=dict)
    # Reload the page after a status toggle instead of trusting the local flip
    refresh_after_toggle: bool = False

    @field_validator("page_size_options", mode="after")
    @classmethod
    def sort_page_sizes(cls, value: list[int]) -> list[int]:
        """Keep pager options ordered and positive."""
        if any(size <= 0 for size in value):
            raise ValueError("Page size options must be positive")
        return sorted(set(value))

    @classmethod
    def for_resource(cls, resource: ResourceEndpoints, **kwargs) -> "ControllerConfig":
        """Config for a catalogued resource."""
        return cls(endpoint=resource.list, resource=resource, **kwargs)

    @property
    def endpoints(self) -> ResourceEndpoints:
        """Per-action URLs, defaulting to REST style on `endpoint`."""
        return self.resource or ResourceEndpoints.rest(self.endpoint)


class ErrorInfo(BaseModel):
    """The last failure, as displayed in the error banner."""

    model_config = ConfigDict(frozen=True)

    title: str
    message: str
    error_type: str
    status_code: Optional[int] = None
    action: Optional[str] = None

    @classmethod
    def from_error(cls, error: ApiError, action: Optional[str] = None) -> "ErrorInfo":
        """Describe an error, naming the attempted action if any."""
        notification = error_notification(error, action)
        return cls(
            title=notification.title,
            message=notification.text,
            error_type=type(error).__name__,
            status_code=error.status_code,
            action=action,
        )


class UIState(BaseModel):
    """Snapshot of a table screen, replaced on every transition."""

    model_config = ConfigDict(frozen=True)

    query: Query
    result: PageResult
    load_state: LoadState = LoadState.IDLE
    is_loading: bool = False
    last_error: Optional[ErrorInfo] = None
    # Typed in the search box, not yet submitted
    search_draft: str = ""

    @property
    def items(self) -> list[dict]:
        """Rows currently displayed."""
        return self.result.items
