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
"""Async client for the console REST API.

Wraps an aiohttp session, attaching the bearer credential to every request
and translating transport failures into the `console_table.errors` taxonomy.
"""

import asyncio
import inspect
import json
from time import time
from typing import Any, Optional
from urllib.parse import urlparse

import aiohttp
import jwt
from loguru import logger as log

from console_table.config import settings
from console_table.errors import (
    GENERIC_ERROR_MESSAGE,
    HttpError,
    NetworkError,
    SessionInvalidError,
    error_detail,
)
from console_table.transport.transport_schemas import ApiResponse, TokenProvider


def token_expired(token: str) -> bool:
    """Check if a bearer token is a JWT whose `exp` is in the past.

    Opaque (non-JWT) tokens cannot be inspected and are never
    considered expired here, the server decides.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.DecodeError:
        return False

    expiry = claims.get("exp")
    if not expiry:
        log.debug("Bearer token has no expiry claim")
        return True
    return expiry <= int(time())


def is_auth_path(url: str) -> bool:
    """A 401 on a login endpoint means bad credentials, not session loss."""
    segments = [part for part in urlparse(url).path.split("/") if part]
    for marker in settings.AUTH_PATH_MARKERS:
        wanted = [part for part in marker.split("/") if part]
        # Whole segments only, `/authors` is not `/auth`
        for start in range(len(segments) - len(wanted) + 1):
            if wanted and segments[start : start + len(wanted)] == wanted:
                return True
    return False


def _encode_params(params: Optional[dict]) -> Optional[dict[str, str]]:
    """Drop unset params and convert values to query string form."""
    if not params:
        return None
    encoded = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            encoded[key] = "true" if value else "false"
        else:
            encoded[key] = str(value)
    return encoded


def _decode_body(text: str) -> Any:
    """Parse a JSON body, falling back to the raw text."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text


class ApiClient:
    """Persistent connection to the console backend.

    Use as an async context manager, so the underlying session is closed:

        async with ApiClient(token_provider=get_token) as client:
            response = await client.get("/brands", params={"page": 0})
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_provider: Optional[TokenProvider] = None,
        timeout: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """Configure the client, the session is opened on entry.

        Args:
            base_url (str): Prefix for relative endpoints.
                Defaults to settings.API_BASE_URL.
            token_provider (callable): Returns the bearer token to send,
                sync or async. None sends no Authorization header.
            timeout (float): Total seconds allowed per request.
            session (aiohttp.ClientSession): An existing session to reuse.
                It is not closed on exit.
        """
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.token_provider = token_provider
        self.timeout = aiohttp.ClientTimeout(
            total=timeout or settings.REQUEST_TIMEOUT
        )
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "ApiClient":
        """Open the aiohttp session."""
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
        return self

    async def __aexit__(self, *args):
        """Close the session, if this client created it."""
        await self.close()

    async def close(self):
        """Close the owned session."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    def url_for(self, endpoint: str) -> str:
        """Resolve an endpoint against the base URL.

        Absolute URLs are used unchanged.
        """
        if endpoint.startswith(("http://", "https://")):
            return endpoint
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    async def _auth_headers(self) -> dict[str, str]:
        """Build the Authorization header from the token provider."""
        if not self.token_provider:
            return {}

        token = self.token_provider()
        if inspect.isawaitable(token):
            token = await token
        if not token:
            return {}

        if token_expired(token):
            log.warning("Bearer token expired, refusing to send request")
            raise SessionInvalidError("Session expired", status_code=401)

        return {"Authorization": f"Bearer {token}"}

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json: Any = None,
        data: Any = None,
    ) -> ApiResponse:
        """Send a request and return the decoded 2xx response.

        Args:
            method (str): HTTP verb.
            endpoint (str): Relative path or absolute URL.
            params (dict): Query parameters, None values are dropped.
            json (Any): JSON body.
            data (Any): Form body, e.g. aiohttp.FormData for multipart.

        Returns:
            ApiResponse: status and decoded body.

        Raises:
            NetworkError: No response was received.
            SessionInvalidError: The credential was rejected.
            HttpError: Any other non-2xx status.
        """
        if self.session is None:
            raise RuntimeError("ApiClient must be used as an async context manager")

        method = method.upper()
        url = self.url_for(endpoint)
        headers = await self._auth_headers()
        log.debug(f"Console request: {method} {url}")

        try:
            async with self.session.request(
                method,
                url,
                params=_encode_params(params),
                json=json,
                data=data,
                headers=headers,
                timeout=self.timeout,
            ) as response:
                status = response.status
                text = await response.text()
        except asyncio.TimeoutError as timeout_error:
            msg = "The request took too long to complete. Please try again."
            log.error(f"Request timed out: {method} {url}")
            raise NetworkError(
                msg, timeout=True, url=url, method=method
            ) from timeout_error
        except aiohttp.ClientError as client_error:
            msg = "Unable to connect to the server. Please check your connection."
            log.error(f"Request failed: {method} {url}: {client_error}")
            raise NetworkError(msg, url=url, method=method) from client_error

        body = _decode_body(text)

        if 200 <= status < 300:
            return ApiResponse(status=status, body=body, method=method, url=url)

        _, description = error_detail(body)
        message = description or GENERIC_ERROR_MESSAGE
        log.warning(f"Console response {status} for {method} {url}: {message}")

        if status in (401, 403) and not is_auth_path(url):
            raise SessionInvalidError(
                message, status_code=status, body=body, url=url, method=method
            )
        raise HttpError(message, status_code=status, body=body, url=url, method=method)

    async def get(self, endpoint: str, params: Optional[dict] = None) -> ApiResponse:
        """GET a resource."""
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, json: Any = None, data: Any = None):
        """POST a new resource."""
        return await self.request("POST", endpoint, json=json, data=data)

    async def put(self, endpoint: str, json: Any = None, data: Any = None):
        """PUT a replacement or partial update."""
        return await self.request("PUT", endpoint, json=json, data=data)

    async def patch(self, endpoint: str, json: Any = None, data: Any = None):
        """PATCH a partial update."""
        return await self.request("PATCH", endpoint, json=json, data=data)

    async def delete(self, endpoint: str, params: Optional[dict] = None):
        """DELETE a resource."""
        return await self.request("DELETE", endpoint, params=params)
