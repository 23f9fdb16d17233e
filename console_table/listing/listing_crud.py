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
"""Logic for fetching a page of records and normalising its shape."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from loguru import logger as log

from console_table.enums import ResponseShape
from console_table.errors import DecodeError
from console_table.listing.listing_schemas import PageResult, Query
from console_table.transport.transport_client import ApiClient


@dataclass
class ShapeMatch:
    """Records and total extracted from one response convention."""

    shape: ResponseShape
    items: list
    total: Optional[int]
    paginated: bool = True


def _as_count(value: Any) -> Optional[int]:
    """Read a total field, which may be missing or a numeric string."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def match_content_shape(body: Any) -> Optional[ShapeMatch]:
    """Spring style page: `{"content": [...], "totalElements": n}`."""
    if isinstance(body, dict) and isinstance(body.get("content"), list):
        total = _as_count(body.get("totalElements"))
        return ShapeMatch(
            shape=ResponseShape.CONTENT,
            items=body["content"],
            total=0 if total is None else total,
        )
    return None


def match_array_shape(body: Any) -> Optional[ShapeMatch]:
    """Unpaginated endpoint returning every record as a bare array."""
    if isinstance(body, list):
        return ShapeMatch(
            shape=ResponseShape.ARRAY,
            items=body,
            total=len(body),
            paginated=False,
        )
    return None


def match_data_shape(body: Any) -> Optional[ShapeMatch]:
    """Alternate page: `{"data": [...], "total": n}`."""
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        total = _as_count(body.get("total"))
        return ShapeMatch(
            shape=ResponseShape.DATA,
            items=body["data"],
            total=len(body["data"]) if total is None else total,
        )
    return None


ShapeMatcher = Callable[[Any], Optional[ShapeMatch]]

# Attempted in order, the first match wins
SHAPE_MATCHERS: tuple[ShapeMatcher, ...] = (
    match_content_shape,
    match_array_shape,
    match_data_shape,
)


def _build_page(match: ShapeMatch, query: Query) -> PageResult:
    """Convert a shape match into a PageResult for the query."""
    items = match.items

    if not match.paginated:
        # The endpoint ignores paging, the page is the whole collection
        return PageResult(
            items=items,
            total_count=len(items),
            page_index=0,
            page_size=len(items) or query.page_size,
            shape=match.shape,
            paginated=False,
        )

    if len(items) > query.page_size:
        log.warning(
            f"Backend returned {len(items)} items for page size "
            f"{query.page_size}, truncating"
        )
        items = items[: query.page_size]

    total = match.total or 0
    if total < len(items):
        log.debug(f"Total count {total} below item count, using {len(items)}")
        total = len(items)

    return PageResult(
        items=items,
        total_count=total,
        page_index=query.page_index,
        page_size=query.page_size,
        shape=match.shape,
    )


def normalize_page(
    body: Any,
    query: Query,
    matchers: tuple[ShapeMatcher, ...] = SHAPE_MATCHERS,
) -> PageResult:
    """Normalise any supported collection response into a PageResult.

    Raises:
        DecodeError: The body matched no known shape, or holds rows that
            are not objects. The error carries an empty page as `result`.
    """
    for matcher in matchers:
        match = matcher(body)
        if match is None:
            continue
        if not all(isinstance(item, dict) for item in match.items):
            break
        return _build_page(match, query)

    preview = str(body)[:100]
    log.error(f"Unrecognised collection response: {preview}")
    raise DecodeError(
        "Unexpected response format from server",
        result=PageResult.empty(query),
    )


class ListFetcher:
    """Issue one read per call and return a normalised page.

    Holds no state besides its client, so one instance can serve many
    screens.
    """

    def __init__(
        self,
        client: ApiClient,
        matchers: tuple[ShapeMatcher, ...] = SHAPE_MATCHERS,
    ):
        """Use the given client for requests."""
        self.client = client
        self.matchers = matchers

    async def fetch(self, endpoint: str, query: Query) -> PageResult:
        """Fetch one page of `endpoint` for `query`.

        Network and HTTP failures propagate unchanged.
        """
        response = await self.client.get(endpoint, params=query.to_params())
        try:
            page = normalize_page(response.body, query, self.matchers)
        except DecodeError as e:
            e.url = response.url
            e.method = response.method
            raise
        log.debug(
            f"Fetched {len(page.items)}/{page.total_count} records "
            f"from {endpoint} ({page.shape})"
        )
        return page
