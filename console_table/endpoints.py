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
"""Endpoints of the console resources shown as tables.

The backend does not use one URL per resource: many screens list from
`/x/list` and create at `/x/create`. Paths are relative to
settings.API_BASE_URL.
"""

from dataclasses import dataclass
from typing import Optional

from console_table.enums import MutationKind


@dataclass(frozen=True)
class ResourceEndpoints:
    """The URL used for each action on one resource."""

    list: str
    create: Optional[str] = None
    update: Optional[str] = None
    delete: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def rest(cls, path: str, status: Optional[str] = None) -> "ResourceEndpoints":
        """A conventional resource served entirely from one path."""
        return cls(list=path, create=path, update=path, delete=path, status=status)

    def for_kind(self, kind: MutationKind) -> str:
        """The endpoint for a mutation kind.

        Raises:
            ValueError: The resource does not support this action.
        """
        endpoint = {
            MutationKind.CREATE: self.create,
            MutationKind.UPDATE: self.update,
            MutationKind.DELETE: self.delete,
            MutationKind.STATUS_TOGGLE: self.status or self.update,
        }[kind]
        if not endpoint:
            raise ValueError(f"Resource {self.list} does not support {kind}")
        return endpoint


RESOURCES: dict[str, ResourceEndpoints] = {
    "brands": ResourceEndpoints.rest("/brands"),
    "suppliers": ResourceEndpoints.rest("/suppliers"),
    "categories": ResourceEndpoints.rest("/categories"),
    "subcategories": ResourceEndpoints.rest("/subcategories"),
    "products": ResourceEndpoints(
        list="/products/list",
        create="/products/create",
        update="/products/update",
        delete="/products/products",
    ),
    "purchases": ResourceEndpoints(
        list="/products/purchases",
        create="/products/purchase/add",
        status="/products/purchase/status",
    ),
    "orders": ResourceEndpoints(list="/orders", status="/orders/update/status"),
    "stock_adjustments": ResourceEndpoints(
        list="/products/adjustments", create="/products/adjust/stock"
    ),
    "users": ResourceEndpoints(
        list="/users/list",
        create="/users/create",
        update="/users/update",
        status="/users/activate-deactivate",
    ),
    "groups": ResourceEndpoints(
        list="/groups/list",
        create="/groups/create",
        update="/groups/update",
        status="/groups/activate-deactivate",
    ),
    "branches": ResourceEndpoints(
        list="/branches/list", create="/branches/create", update="/branches/update"
    ),
    "motor_models": ResourceEndpoints.rest("/motors/models"),
    "spare_parts": ResourceEndpoints(
        list="/motors/spare-parts",
        create="/motors/spare-parts/create",
        update="/motors/spare-parts/update",
        delete="/motors/spare-parts/delete",
    ),
    "online_customers": ResourceEndpoints(
        list="/online/customers",
        create="/online/customers",
        update="/online/customers",
    ),
}


def get_resource(name: str) -> ResourceEndpoints:
    """Look up a resource by name.

    Raises:
        KeyError: Unknown resource.
    """
    try:
        return RESOURCES[name]
    except KeyError as e:
        raise KeyError(
            f"Unknown resource '{name}', expected one of {sorted(RESOURCES)}"
        ) from e
