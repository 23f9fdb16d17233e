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
"""Transport dependency wrappers."""

from contextlib import asynccontextmanager
from typing import Optional

from console_table.config import settings
from console_table.transport.transport_client import ApiClient
from console_table.transport.transport_schemas import TokenProvider


def settings_token() -> Optional[str]:
    """Bearer token from the API_TOKEN env var, for scripts and tests."""
    if settings.API_TOKEN:
        return settings.API_TOKEN.get_secret_value()
    return None


@asynccontextmanager
async def get_api_client(
    token_provider: Optional[TokenProvider] = None,
    base_url: Optional[str] = None,
):
    """Wrap getting an ApiClient, falling back to env var credentials."""
    async with ApiClient(
        base_url=base_url or settings.API_BASE_URL,
        token_provider=token_provider or settings_token,
    ) as client:
        yield client
