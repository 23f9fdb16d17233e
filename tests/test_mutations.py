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
"""Tests for executing mutations and optimistic row patches."""

import asyncio
from datetime import date
from decimal import Decimal
from io import BytesIO

import pytest

from console_table.enums import MutationKind, RefreshPolicy
from console_table.errors import HttpError, NetworkError
from console_table.listing.listing_schemas import PageResult
from console_table.mutations.mutation_crud import (
    MutationCoordinator,
    OptimisticPatch,
    target_url,
)
from console_table.mutations.mutation_schemas import MutationRequest, UploadPart


def test_create_cannot_have_target():
    """Creates never target an existing record."""
    with pytest.raises(ValueError):
        MutationRequest(kind=MutationKind.CREATE, target_id=4)


@pytest.mark.parametrize(
    "kind", [MutationKind.UPDATE, MutationKind.DELETE, MutationKind.STATUS_TOGGLE]
)
def test_other_kinds_need_target(kind):
    """Every other kind needs a target id."""
    with pytest.raises(ValueError):
        MutationRequest(kind=kind, payload={"a": 1})


def test_toggle_needs_field_and_value():
    """A toggle must know what it flips."""
    with pytest.raises(ValueError):
        MutationRequest(kind=MutationKind.STATUS_TOGGLE, target_id=1)


def test_toggle_body_flips_current_value():
    """The toggle sends the negated value, merged with any payload."""
    request = MutationRequest.toggle(
        7, status_field="allowLogin", current_value=True, payload={"reason": "left"}
    )

    assert request.body == {"reason": "left", "allowLogin": False}
    assert request.action_label == "update status"


def test_action_label_override():
    """Screens can name their own action."""
    request = MutationRequest.delete(3, action="delete brand")

    assert request.action_label == "delete brand"


def test_target_url():
    """Record URLs are endpoint/target."""
    assert target_url("/brands/", 4) == "/brands/4"
    assert target_url("/brands", None) == "/brands"


@pytest.mark.asyncio
async def test_create_posts_payload(client, fake_backend):
    """A create is a POST to the collection, refreshing as requested."""
    coordinator = MutationCoordinator(client)
    request = MutationRequest.create(
        {"brandName": "Acme"}, refresh_policy=RefreshPolicy.FIRST_PAGE
    )

    outcome = await coordinator.execute("/brands", request)

    assert outcome.ok
    assert outcome.refresh == RefreshPolicy.FIRST_PAGE
    assert outcome.message == "Brand created successfully"
    assert outcome.target_id is None
    assert fake_backend.requests[-1]["method"] == "POST"
    assert fake_backend.requests[-1]["path"] == "/api/v1/brands"
    assert fake_backend.requests[-1]["json"] == {"brandName": "Acme"}
    assert fake_backend.brands[0]["brandName"] == "Acme"


@pytest.mark.asyncio
async def test_update_puts_to_record(client, fake_backend):
    """An update is a PUT to endpoint/id and refreshes the current page."""
    outcome = await MutationCoordinator(client).execute(
        "/brands", MutationRequest.update(3, {"brandName": "Renamed"})
    )

    assert outcome.ok
    assert outcome.refresh == RefreshPolicy.CURRENT_PAGE
    assert outcome.target_id == 3
    assert fake_backend.requests[-1]["method"] == "PUT"
    assert fake_backend.requests[-1]["path"] == "/api/v1/brands/3"
    assert fake_backend.brands[2]["brandName"] == "Renamed"


@pytest.mark.asyncio
async def test_update_can_use_patch(client, fake_backend):
    """Backends expecting PATCH for partial updates are supported."""
    await MutationCoordinator(client).execute(
        "/brands", MutationRequest.update(3, {"brandName": "Patched"}, use_patch=True)
    )

    assert fake_backend.requests[-1]["method"] == "PATCH"


@pytest.mark.asyncio
async def test_dates_sent_as_iso_strings(client, fake_backend):
    """Dates and decimals in a payload are sent in their JSON form."""
    outcome = await MutationCoordinator(client).execute(
        "/brands",
        MutationRequest.update(
            3, {"launched": date(2024, 1, 1), "margin": Decimal("0.25")}
        ),
    )

    assert outcome.ok
    assert fake_backend.requests[-1]["json"] == {
        "launched": "2024-01-01",
        "margin": "0.25",
    }
    assert fake_backend.brands[2]["launched"] == "2024-01-01"


@pytest.mark.asyncio
async def test_unencodable_payload_is_a_failed_outcome(client, fake_backend):
    """A body that cannot be encoded fails without reaching the server."""
    requests_before = len(fake_backend.requests)

    outcome = await MutationCoordinator(client).execute(
        "/brands", MutationRequest.update(3, {"logo": object()})
    )

    assert not outcome.ok
    assert outcome.failure_message.startswith(
        "Failed to update record: Invalid request data"
    )
    assert len(fake_backend.requests) == requests_before


@pytest.mark.asyncio
async def test_delete_sends_no_body(client, fake_backend):
    """A delete is a bodiless DELETE to endpoint/id."""
    outcome = await MutationCoordinator(client).execute(
        "/brands", MutationRequest.delete(5)
    )

    assert outcome.ok
    assert outcome.body is None
    assert fake_backend.requests[-1]["method"] == "DELETE"
    assert fake_backend.requests[-1]["json"] is None
    assert all(row["id"] != 5 for row in fake_backend.brands)


@pytest.mark.asyncio
async def test_status_toggle_sends_partial_payload(client, fake_backend):
    """A toggle sends only the flipped field."""
    outcome = await MutationCoordinator(client).execute(
        "/brands",
        MutationRequest.toggle(2, status_field="active", current_value=True),
    )

    assert outcome.ok
    assert fake_backend.requests[-1]["json"] == {"active": False}
    assert fake_backend.brands[1]["active"] is False


@pytest.mark.asyncio
async def test_failure_is_returned_not_raised(client):
    """Request failures settle into a failed outcome naming the action."""
    outcome = await MutationCoordinator(client).execute(
        "/brands", MutationRequest.update(999, {"brandName": "Ghost"})
    )

    assert not outcome.ok
    assert outcome.refresh is None
    assert isinstance(outcome.error, HttpError)
    assert outcome.error.status_code == 404
    assert outcome.target_id == 999
    assert outcome.failure_message == "Failed to update record: Brand not found"


@pytest.mark.asyncio
async def test_unauthorised_write_flags_session(client, fake_backend):
    """401 outcomes are marked as session invalid."""
    fake_backend.fail_next("DELETE", "/api/v1/brands/1", 401, {"message": "Expired"})

    outcome = await MutationCoordinator(client).execute(
        "/brands", MutationRequest.delete(1)
    )

    assert not outcome.ok
    assert outcome.session_invalid


@pytest.mark.asyncio
async def test_network_failure_outcome():
    """Unreachable servers also settle into a failed outcome."""

    class DownClient:
        async def request(self, method, url, json=None, data=None):
            raise NetworkError("Unable to connect to the server.")

    outcome = await MutationCoordinator(DownClient()).execute(
        "/brands", MutationRequest.create({"brandName": "Acme"})
    )

    assert not outcome.ok
    assert outcome.failure_message == (
        "Failed to create record: Unable to connect to the server."
    )


@pytest.mark.asyncio
async def test_multipart_create(client, fake_backend):
    """Requests with files are sent as multipart form data."""
    request = MutationRequest.create(
        {"brandName": "Acme"},
        files={"logo": UploadPart("logo.png", BytesIO(b"png-bytes"), "image/png")},
    )

    outcome = await MutationCoordinator(client).execute("/brands/with-logo", request)

    assert outcome.ok
    sent = fake_backend.requests[-1]
    assert sent["content_type"] == "multipart/form-data"
    assert sent["form"] == {
        "brandName": "Acme",
        "logo": "logo.png",
        "logo_bytes": b"png-bytes",
    }


@pytest.mark.asyncio
async def test_concurrent_mutations_keep_their_targets(client, fake_backend):
    """Simultaneous writes on different rows are not cross applied."""
    coordinator = MutationCoordinator(client)
    requests = [
        MutationRequest.toggle(row_id, status_field="active", current_value=True)
        for row_id in (1, 2, 3)
    ]

    outcomes = await asyncio.gather(
        *(coordinator.execute("/brands", request) for request in requests)
    )

    assert [outcome.target_id for outcome in outcomes] == [1, 2, 3]
    assert all(outcome.ok for outcome in outcomes)
    assert [row["active"] for row in fake_backend.brands[:4]] == [
        False,
        False,
        False,
        True,
    ]


def _page() -> PageResult:
    return PageResult(
        items=[
            {"id": 1, "active": True, "name": "a"},
            {"id": 2, "active": False, "name": "b"},
        ],
        total_count=2,
    )


def test_optimistic_patch_apply_and_revert():
    """A reverted patch restores the original field."""
    page = _page()
    optimistic = OptimisticPatch(1, {"active": False})

    patched = optimistic.apply(page)
    assert patched.items[0]["active"] is False
    assert patched.items[1] == page.items[1]
    # The original page is untouched
    assert page.items[0]["active"] is True

    reverted = optimistic.revert(patched)
    assert reverted.items[0]["active"] is True
    assert optimistic.settled


def test_optimistic_patch_revert_only_touches_patched_fields():
    """Changes made to other fields since apply survive a revert."""
    optimistic = OptimisticPatch(1, {"active": False})
    patched = optimistic.apply(_page())
    renamed = patched.model_copy(
        update={"items": [{**patched.items[0], "name": "z"}, patched.items[1]]}
    )

    reverted = optimistic.revert(renamed)

    assert reverted.items[0] == {"id": 1, "active": True, "name": "z"}


def test_optimistic_patch_missing_row():
    """Patching a row that is not displayed changes nothing."""
    page = _page()
    optimistic = OptimisticPatch(99, {"active": False})

    assert optimistic.apply(page).items == page.items
    assert optimistic.revert(page).items == page.items


def test_optimistic_patch_applies_once():
    """A patch cannot be applied twice."""
    optimistic = OptimisticPatch(1, {"active": False})
    optimistic.apply(_page())

    with pytest.raises(RuntimeError):
        optimistic.apply(_page())


def test_optimistic_patch_custom_row_key():
    """Rows can be identified by any field."""
    page = PageResult(items=[{"uuid": "x", "on": True}], total_count=1)

    patched = OptimisticPatch("x", {"on": False}, row_key="uuid").apply(page)

    assert patched.items[0]["on"] is False


def test_optimistic_patch_confirm_survives_reload():
    """Confirming re-applies the change to a page reloaded since apply."""
    optimistic = OptimisticPatch(1, {"active": False})
    optimistic.apply(_page())
    # A reload during the write brings back the old server value
    reloaded = _page()

    confirmed = optimistic.confirm(reloaded)

    assert confirmed.items[0] == {"id": 1, "active": False, "name": "a"}
    assert confirmed.items[1] == reloaded.items[1]
    assert optimistic.settled
