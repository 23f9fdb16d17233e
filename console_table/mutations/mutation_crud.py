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
"""Logic for executing record mutations and reconciling local rows."""

import json
from typing import Any, Optional

import aiohttp
from loguru import logger as log
from pydantic_core import to_jsonable_python

from console_table.enums import MutationKind, RefreshPolicy
from console_table.errors import ApiError
from console_table.listing.listing_schemas import PageResult, Record
from console_table.mutations.mutation_schemas import (
    MutationOutcome,
    MutationRequest,
    RecordId,
)
from console_table.transport.transport_client import ApiClient


def target_url(endpoint: str, target_id: Optional[RecordId]) -> str:
    """The URL of one record, `endpoint/target_id`."""
    if target_id is None:
        return endpoint
    return f"{endpoint.rstrip('/')}/{target_id}"


def build_form_data(request: MutationRequest) -> aiohttp.FormData:
    """Encode a request with files as a multipart body.

    Nested payload values are sent as JSON strings, as browsers do when
    a form holds structured fields.
    """
    form = aiohttp.FormData()
    for key, value in request.body.items():
        if value is None:
            continue
        value = to_jsonable_python(value)
        if isinstance(value, (dict, list)):
            form.add_field(key, json.dumps(value), content_type="application/json")
        elif isinstance(value, bool):
            form.add_field(key, "true" if value else "false")
        else:
            form.add_field(key, str(value))

    for name, part in request.files.items():
        form.add_field(
            name,
            part.content,
            filename=part.filename,
            content_type=part.content_type,
        )
    return form


class MutationCoordinator:
    """Execute create, update, delete and status toggle requests.

    Requests are not serialised, several may be in flight at once.
    Each outcome carries its own request, so it can only be applied to
    the row it targets.
    """

    def __init__(self, client: ApiClient):
        """Use the given client for requests."""
        self.client = client

    def _method(self, request: MutationRequest) -> str:
        """HTTP verb for a mutation kind."""
        if request.kind == MutationKind.CREATE:
            return "POST"
        if request.kind == MutationKind.DELETE:
            return "DELETE"
        return "PATCH" if request.use_patch else "PUT"

    async def execute(self, endpoint: str, request: MutationRequest) -> MutationOutcome:
        """Send a mutation, returning a settled outcome.

        Request failures are returned as `MutationOutcome(ok=False)`,
        never raised, so the caller always gets a result to act on.
        """
        method = self._method(request)
        url = target_url(endpoint, request.target_id)

        json_body: Any = None
        form_body: Optional[aiohttp.FormData] = None
        try:
            if request.kind != MutationKind.DELETE:
                if request.files:
                    form_body = build_form_data(request)
                else:
                    # Dates, decimals and UUIDs become their JSON forms
                    json_body = to_jsonable_python(request.body)
        except (TypeError, ValueError) as e:
            log.error(f"Cannot encode body to {request.action_label}: {e}")
            error = ApiError(f"Invalid request data: {e}", url=url, method=method)
            return MutationOutcome(request=request, ok=False, error=error)

        try:
            response = await self.client.request(
                method, url, json=json_body, data=form_body
            )
        except ApiError as e:
            log.error(f"Failed to {request.action_label} ({method} {url}): {e}")
            return MutationOutcome(request=request, ok=False, error=e)

        if request.kind == MutationKind.CREATE:
            refresh = request.refresh_policy
        else:
            refresh = RefreshPolicy.CURRENT_PAGE

        log.info(f"Completed {request.action_label} ({method} {url})")
        return MutationOutcome(
            request=request,
            ok=True,
            refresh=refresh,
            message=response.message,
            warning=response.warning,
            body=response.body,
        )


class OptimisticPatch:
    """Two-phase local change to one row: apply, then confirm or revert.

    The patch never mutates the page it is given, it returns a new one,
    leaving the owner of the page to store it.
    """

    def __init__(
        self, target_id: RecordId, changes: dict[str, Any], row_key: str = "id"
    ):
        """Prepare a patch of `changes` to the row with `target_id`."""
        self.target_id = target_id
        self.changes = changes
        self.row_key = row_key
        self.previous: dict[str, Any] = {}
        self.applied = False
        self.settled = False

    def _matches(self, record: Record) -> bool:
        return record.get(self.row_key) == self.target_id

    def _patch_rows(self, page: PageResult, values: dict[str, Any]) -> PageResult:
        items = [
            {**record, **values} if self._matches(record) else record
            for record in page.items
        ]
        return page.model_copy(update={"items": items})

    def apply(self, page: PageResult) -> PageResult:
        """Phase one, show the change before the server confirms it."""
        if self.applied:
            raise RuntimeError("Optimistic patch already applied")
        for record in page.items:
            if self._matches(record):
                self.previous = {key: record.get(key) for key in self.changes}
                break
        else:
            log.debug(f"Row {self.target_id} not on the current page, nothing to patch")
        self.applied = True
        return self._patch_rows(page, self.changes)

    def confirm(self, page: PageResult) -> PageResult:
        """Phase two on success, the local change stands.

        The changes are applied again to `page`, in case a reload since
        `apply()` replaced the row with its state from before the write.
        """
        self.settled = True
        return self._patch_rows(page, self.changes)

    def revert(self, page: PageResult) -> PageResult:
        """Phase two on failure, restore the patched fields.

        Only the fields this patch touched are restored, on whichever
        page is displayed now.
        """
        self.settled = True
        if not self.previous:
            return page
        return self._patch_rows(page, self.previous)
