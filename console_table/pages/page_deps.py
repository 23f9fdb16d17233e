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
"""Page controller dependency wrappers."""

from contextlib import asynccontextmanager
from typing import Optional, Union

from console_table.endpoints import get_resource
from console_table.listing.listing_crud import ListFetcher
from console_table.mutations.mutation_crud import MutationCoordinator
from console_table.notifications.notification_crud import Notifier
from console_table.pages.page_controller import Hook, PageDataController
from console_table.pages.page_schemas import ControllerConfig
from console_table.transport.transport_client import ApiClient
from console_table.transport.transport_deps import get_api_client
from console_table.transport.transport_schemas import TokenProvider


def resolve_config(config: Union[ControllerConfig, str]) -> ControllerConfig:
    """Accept a config, or the name of a catalogued resource."""
    if isinstance(config, ControllerConfig):
        return config
    return ControllerConfig.for_resource(get_resource(config))


def build_page_controller(
    config: Union[ControllerConfig, str],
    client: ApiClient,
    notifier: Optional[Notifier] = None,
    on_data_loaded: Optional[Hook] = None,
    on_session_invalid: Optional[Hook] = None,
) -> PageDataController:
    """Wire a controller to a fetcher and coordinator sharing one client."""
    return PageDataController(
        resolve_config(config),
        fetcher=ListFetcher(client),
        coordinator=MutationCoordinator(client),
        notifier=notifier,
        on_data_loaded=on_data_loaded,
        on_session_invalid=on_session_invalid,
    )


@asynccontextmanager
async def open_page_controller(
    config: Union[ControllerConfig, str],
    token_provider: Optional[TokenProvider] = None,
    notifier: Optional[Notifier] = None,
    on_data_loaded: Optional[Hook] = None,
    on_session_invalid: Optional[Hook] = None,
):
    """Mount a controller for the lifetime of a screen.

    The controller is unmounted, and its client closed, on every exit path.
    """
    async with get_api_client(token_provider) as client:
        controller = build_page_controller(
            config,
            client,
            notifier=notifier,
            on_data_loaded=on_data_loaded,
            on_session_invalid=on_session_invalid,
        )
        try:
            await controller.mount()
            yield controller
        finally:
            controller.unmount()
