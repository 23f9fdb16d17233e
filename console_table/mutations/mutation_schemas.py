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
"""Schemas and DTOs for write operations on table records."""

from dataclasses import dataclass, field
from typing import Any, Optional, Self, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import model_validator

from console_table.enums import MutationKind, RefreshPolicy
from console_table.errors import ApiError, SessionInvalidError

RecordId = Union[int, str]


@dataclass
class UploadPart:
    """A file sent as one part of a multipart body."""

    filename: str
    # bytes, or a file-like object such as BytesIO
    content: Any
    content_type: str = "application/octet-stream"


class MutationRequest(BaseModel):
    """A confirmed user action, consumed once by the coordinator."""

    model_config = ConfigDict(frozen=True)

    kind: MutationKind
    target_id: Optional[RecordId] = None
    payload: dict[str, Any] = Field(default_factory=dict)
    files: dict[str, UploadPart] = Field(default_factory=dict)
    # Human readable action for messages, e.g. "delete brand"
    action: Optional[str] = None
    # Only meaningful for CREATE, other kinds reload the current page
    refresh_policy: RefreshPolicy = RefreshPolicy.CURRENT_PAGE
    # STATUS_TOGGLE only
    status_field: Optional[str] = None
    current_value: Optional[bool] = None
    use_patch: bool = False

    @model_validator(mode="after")
    def check_target(self) -> Self:
        """Creates have no target, every other kind needs one."""
        if self.kind == MutationKind.CREATE and self.target_id is not None:
            raise ValueError("A create request cannot target an existing record")
        if self.kind != MutationKind.CREATE and self.target_id is None:
            raise ValueError(f"A {self.kind} request requires a target_id")
        if self.kind == MutationKind.STATUS_TOGGLE and (
            not self.status_field or self.current_value is None
        ):
            raise ValueError("A status toggle requires status_field and current_value")
        return self

    @property
    def action_label(self) -> str:
        """The action named in notifications."""
        return self.action or self.kind.label

    @property
    def body(self) -> dict[str, Any]:
        """Fields sent to the backend."""
        if self.kind == MutationKind.STATUS_TOGGLE:
            return {**self.payload, self.status_field: not self.current_value}
        return dict(self.payload)

    @classmethod
    def create(
        cls,
        payload: dict,
        refresh_policy: RefreshPolicy = RefreshPolicy.CURRENT_PAGE,
        **kwargs,
    ) -> Self:
        """A new record."""
        return cls(
            kind=MutationKind.CREATE,
            payload=payload,
            refresh_policy=refresh_policy,
            **kwargs,
        )

    @classmethod
    def update(cls, target_id: RecordId, payload: dict, **kwargs) -> Self:
        """Edit an existing record."""
        return cls(
            kind=MutationKind.UPDATE, target_id=target_id, payload=payload, **kwargs
        )

    @classmethod
    def delete(cls, target_id: RecordId, **kwargs) -> Self:
        """Remove a record."""
        return cls(kind=MutationKind.DELETE, target_id=target_id, **kwargs)

    @classmethod
    def toggle(
        cls, target_id: RecordId, status_field: str, current_value: bool, **kwargs
    ) -> Self:
        """Flip a boolean field such as `active` or `allowLogin`."""
        return cls(
            kind=MutationKind.STATUS_TOGGLE,
            target_id=target_id,
            status_field=status_field,
            current_value=current_value,
            **kwargs,
        )


@dataclass
class MutationOutcome:
    """The settled result of one mutation.

    Exactly one of success (`ok`, with `refresh`) or failure (`error`).
    """

    request: MutationRequest
    ok: bool
    refresh: Optional[RefreshPolicy] = None
    message: Optional[str] = None
    warning: Optional[str] = None
    error: Optional[ApiError] = None
    body: Any = field(default=None, repr=False)

    @property
    def target_id(self) -> Optional[RecordId]:
        """The record this outcome belongs to."""
        return self.request.target_id

    @property
    def session_invalid(self) -> bool:
        """Whether the failure means the user must log in again."""
        return isinstance(self.error, SessionInvalidError)

    @property
    def failure_message(self) -> Optional[str]:
        """One-shot error text naming the attempted action."""
        if self.ok or self.error is None:
            return None
        return f"Failed to {self.request.action_label}: {self.error.message}"
