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
"""Schemas for reading paginated collections."""

from typing import Any, Optional, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import model_validator

from console_table.config import settings
from console_table.enums import ResponseShape

Record = dict[str, Any]


def record_id(record: Record, row_key: str = "id") -> Any:
    """Get the identifier of a record, which every row must have."""
    try:
        return record[row_key]
    except KeyError as e:
        raise KeyError(f"Record has no identifier field '{row_key}'") from e


class Query(BaseModel):
    """What page, search and filters a screen currently asks for.

    `page_index` is 0-based, the convention sent to the backend.
    """

    model_config = ConfigDict(frozen=True)

    page_index: int = Field(default=0, ge=0)
    page_size: int = Field(default_factory=lambda: settings.DEFAULT_PAGE_SIZE, gt=0)
    search_term: str = ""
    extra_filters: dict[str, Any] = Field(default_factory=dict)

    @property
    def page_number(self) -> int:
        """The 1-based page number shown in the pager."""
        return self.page_index + 1

    def to_params(self) -> dict[str, Any]:
        """Query string parameters for the list endpoint.

        An empty search term is omitted entirely, some backends treat
        `search=` as a filter matching nothing.
        """
        params: dict[str, Any] = {"page": self.page_index, "size": self.page_size}
        if self.search_term:
            params["search"] = self.search_term
        for key, value in self.extra_filters.items():
            if value is None or value == "":
                continue
            params[key] = value
        return params


class PageResult(BaseModel):
    """One page of records, whatever shape the backend returned."""

    model_config = ConfigDict(frozen=True)

    items: list[Record] = Field(default_factory=list)
    total_count: int = Field(default=0, ge=0)
    page_index: int = Field(default=0, ge=0)
    page_size: int = Field(default=10, gt=0)
    shape: ResponseShape = ResponseShape.CONTENT
    paginated: bool = True

    @model_validator(mode="after")
    def check_page_bounds(self) -> Self:
        """A page never holds more rows than its size or the total."""
        if len(self.items) > self.page_size:
            raise ValueError(
                f"Page holds {len(self.items)} items, more than size {self.page_size}"
            )
        if self.total_count < len(self.items):
            raise ValueError(
                f"Total count {self.total_count} is less than {len(self.items)} items"
            )
        return self

    @classmethod
    def empty(cls, query: Optional[Query] = None, shape=ResponseShape.UNKNOWN) -> Self:
        """An empty page for the given query."""
        query = query or Query()
        return cls(
            items=[],
            total_count=0,
            page_index=query.page_index,
            page_size=query.page_size,
            shape=shape,
        )

    @property
    def pages(self) -> int:
        """Total number of pages."""
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        """Whether there are records after this page."""
        if not self.paginated:
            return False
        return (self.page_index + 1) * self.page_size < self.total_count

    @property
    def has_prev(self) -> bool:
        """Whether this is not the first page."""
        return self.paginated and self.page_index > 0

    @property
    def summary(self) -> str:
        """Text for the pager footer."""
        return f"Total {self.total_count} items"
