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
"""Config file for console-table, using environment variables."""

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import BeforeValidator, Field, SecretStr, TypeAdapter
from pydantic.networks import HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

HttpUrlStr = Annotated[
    str,
    BeforeValidator(
        lambda value: str(TypeAdapter(HttpUrl).validate_python(value)).rstrip("/")
    ),
]


class Settings(BaseSettings):
    """Main settings class, defining environment variables."""

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="allow",
    )

    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    API_BASE_URL: HttpUrlStr = "http://localhost:4850/api/v1"
    API_TOKEN: Optional[SecretStr] = None
    # Seconds, total for one request including reading the body
    REQUEST_TIMEOUT: float = Field(default=30, gt=0)

    DEFAULT_PAGE_SIZE: int = Field(default=10, gt=0)
    PAGE_SIZE_OPTIONS: list[int] = [10, 20, 50, 100]
    DEFAULT_ROW_KEY: str = "id"

    # A 401 on these paths is a failed login, not an expired session
    AUTH_PATH_MARKERS: list[str] = ["/login", "/auth", "/token"]

    @property
    def log_level(self) -> str:
        """Effective log level, forced to DEBUG in debug mode."""
        if self.DEBUG:
            return "DEBUG"
        return self.LOG_LEVEL.upper()


@lru_cache
def get_settings():
    """Cache settings when accessed throughout app."""
    _settings = Settings()
    return _settings


settings = get_settings()
