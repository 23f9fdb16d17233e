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
"""Configuration and fixtures for PyTest."""

import asyncio
import logging
from typing import Any, Optional

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer
from loguru import logger

from console_table.enums import MutationKind, RefreshPolicy
from console_table.listing.listing_schemas import PageResult, Query
from console_table.mutations.mutation_schemas import MutationOutcome, MutationRequest
from console_table.transport.transport_client import ApiClient
from console_table.transport.transport_schemas import ApiResponse

log = logging.getLogger(__name__)


class FakeBackend:
    """In-memory console backend serving brands in every supported shape."""

    def __init__(self, count: int = 25):
        """Seed `count` brands."""
        self.brands = [
            {"id": i, "brandName": f"Brand {i}", "active": True}
            for i in range(1, count + 1)
        ]
        self.requests: list[dict[str, Any]] = []
        # (method, path) -> (status, body) returned once instead of the route
        self.failures: dict[tuple[str, str], tuple[int, Any]] = {}

    def fail_next(self, method: str, path: str, status: int, body: Any = None):
        """Make the next matching request fail."""
        self.failures[(method, path)] = (status, body)

    @web.middleware
    async def record(self, request: web.Request, handler):
        """Log every request and apply queued failures."""
        body = None
        if request.can_read_body and request.content_type == "application/json":
            body = await request.json()
        self.requests.append(
            {
                "method": request.method,
                "path": request.path,
                "query": dict(request.query),
                "json": body,
                "headers": dict(request.headers),
                "content_type": request.content_type,
            }
        )
        failure = self.failures.pop((request.method, request.path), None)
        if failure:
            status, payload = failure
            if payload is None:
                return web.Response(status=status)
            return web.json_response(payload, status=status)
        return await handler(request)

    def _filtered(self, request: web.Request) -> list[dict]:
        search = request.query.get("search", "").lower()
        rows = [row for row in self.brands if search in row["brandName"].lower()]
        if "active" in request.query:
            wanted = request.query["active"] == "true"
            rows = [row for row in rows if row["active"] is wanted]
        return rows

    def _find(self, request: web.Request) -> Optional[dict]:
        brand_id = int(request.match_info["brand_id"])
        return next((row for row in self.brands if row["id"] == brand_id), None)

    async def list_content(self, request: web.Request):
        """Spring style paginated list."""
        page = int(request.query.get("page", 0))
        size = int(request.query.get("size", 10))
        rows = self._filtered(request)
        return web.json_response(
            {
                "content": rows[page * size : (page + 1) * size],
                "totalElements": len(rows),
            }
        )

    async def list_data(self, request: web.Request):
        """Alternate paginated list."""
        page = int(request.query.get("page", 0))
        size = int(request.query.get("size", 10))
        rows = self._filtered(request)
        return web.json_response(
            {"data": rows[page * size : (page + 1) * size], "total": len(rows)}
        )

    async def list_unpaginated(self, request: web.Request):
        """Every brand as a bare array."""
        return web.json_response(self._filtered(request))

    async def malformed(self, request: web.Request):
        """A body matching no collection shape."""
        return web.json_response({"unexpected": True})

    async def create(self, request: web.Request):
        """Add a brand to the top of the list."""
        payload = await request.json()
        new_id = max((row["id"] for row in self.brands), default=0) + 1
        brand = {"id": new_id, "active": True, **payload}
        self.brands.insert(0, brand)
        return web.json_response(
            {"message": "Brand created successfully", "id": new_id}, status=201
        )

    async def create_multipart(self, request: web.Request):
        """Accept a brand with a logo upload."""
        form = await request.post()
        logo = form["logo"]
        self.requests[-1]["form"] = {
            "brandName": form["brandName"],
            "logo": logo.filename,
            "logo_bytes": logo.file.read(),
        }
        return web.json_response({"message": "Brand created"}, status=201)

    async def update(self, request: web.Request):
        """Update fields of one brand."""
        brand = self._find(request)
        if brand is None:
            return web.json_response({"message": "Brand not found"}, status=404)
        brand.update(await request.json())
        return web.json_response({"message": "Brand updated successfully"})

    async def delete(self, request: web.Request):
        """Remove one brand."""
        brand = self._find(request)
        if brand is None:
            return web.json_response({"message": "Brand not found"}, status=404)
        self.brands.remove(brand)
        return web.Response(status=204)

    async def secure(self, request: web.Request):
        """Always rejects the credential."""
        return web.json_response({"message": "Token invalid"}, status=401)

    async def login(self, request: web.Request):
        """Always rejects the login attempt."""
        return web.json_response({"message": "Bad credentials"}, status=401)

    async def slow(self, request: web.Request):
        """Responds after the client timeout."""
        await asyncio.sleep(1)
        return web.json_response([])

    async def plain_text(self, request: web.Request):
        """Non-JSON success body."""
        return web.Response(text="ok")

    def app(self) -> web.Application:
        """The aiohttp application exposing the routes."""
        app = web.Application(middlewares=[self.record])
        app.add_routes(
            [
                web.get("/api/v1/brands", self.list_content),
                web.get("/api/v1/brands/data", self.list_data),
                web.get("/api/v1/brands/unpaginated", self.list_unpaginated),
                web.get("/api/v1/brands/broken", self.malformed),
                web.post("/api/v1/brands", self.create),
                web.post("/api/v1/brands/with-logo", self.create_multipart),
                web.put("/api/v1/brands/{brand_id}", self.update),
                web.patch("/api/v1/brands/{brand_id}", self.update),
                web.delete("/api/v1/brands/{brand_id}", self.delete),
                web.get("/api/v1/secure", self.secure),
                web.post("/api/v1/auth/login", self.login),
                web.get("/api/v1/slow", self.slow),
                web.get("/api/v1/text", self.plain_text),
            ]
        )
        return app


@pytest.fixture()
def fake_backend() -> FakeBackend:
    """Backend state, seeded with 25 brands."""
    return FakeBackend()


@pytest_asyncio.fixture()
async def backend_url(fake_backend):
    """Run the fake backend, yielding its API base URL."""
    server = TestServer(fake_backend.app())
    await server.start_server()
    try:
        yield str(server.make_url("/api/v1"))
    finally:
        await server.close()


@pytest_asyncio.fixture()
async def client(backend_url):
    """An ApiClient for the fake backend, with a static opaque token."""
    async with ApiClient(
        base_url=backend_url, token_provider=lambda: "test-token"
    ) as api:
        yield api


class ScriptedFetcher:
    """ListFetcher stand-in whose responses are released by the test.

    Each call waits on its own event, so tests control resolution order.
    """

    def __init__(self):
        """Start with no calls."""
        self.calls: list[Query] = []
        self.gates: list[asyncio.Event] = []
        self.results: list[Any] = []
        self.auto = True

    def respond(self, query: Query) -> PageResult:
        """Default result, one row per page labelled with the query."""
        return PageResult(
            items=[{"id": query.page_index + 1, "search": query.search_term}],
            total_count=50,
            page_index=query.page_index,
            page_size=query.page_size,
        )

    async def fetch(self, endpoint: str, query: Query) -> PageResult:
        """Record the call, wait for release unless in auto mode."""
        self.calls.append(query)
        index = len(self.calls) - 1
        gate = asyncio.Event()
        self.gates.append(gate)
        self.results.append(None)
        if self.auto:
            gate.set()
        await gate.wait()
        result = self.results[index]
        if isinstance(result, Exception):
            raise result
        return result or self.respond(query)

    def release(self, index: int, result: Any = None):
        """Let call `index` resolve, with an optional result or error."""
        self.results[index] = result
        self.gates[index].set()


class ScriptedCoordinator:
    """MutationCoordinator stand-in returning a prepared outcome."""

    def __init__(self):
        """Succeed by default."""
        self.calls: list[tuple[str, MutationRequest]] = []
        self.error = None
        self.message = None
        self.gate: Optional[asyncio.Event] = None

    async def execute(self, endpoint: str, request: MutationRequest) -> MutationOutcome:
        """Return success, or failure when `error` is set."""
        self.calls.append((endpoint, request))
        if self.gate:
            await self.gate.wait()
        if self.error:
            return MutationOutcome(request=request, ok=False, error=self.error)
        refresh = (
            request.refresh_policy
            if request.kind == MutationKind.CREATE
            else RefreshPolicy.CURRENT_PAGE
        )
        return MutationOutcome(
            request=request, ok=True, refresh=refresh, message=self.message
        )


class DummyClient:
    """ApiClient stand-in returning canned bodies by endpoint."""

    def __init__(self, bodies: dict[str, Any]):
        """Map endpoint -> decoded body."""
        self.bodies = bodies
        self.calls: list[tuple[str, str, Optional[dict]]] = []

    async def get(self, endpoint: str, params: Optional[dict] = None) -> ApiResponse:
        """Return the canned body for `endpoint`."""
        self.calls.append(("GET", endpoint, params))
        return ApiResponse(
            status=200, body=self.bodies[endpoint], method="GET", url=endpoint
        )


@pytest.fixture()
def scripted_fetcher() -> ScriptedFetcher:
    """A fetcher controlled by the test."""
    return ScriptedFetcher()


@pytest.fixture()
def scripted_coordinator() -> ScriptedCoordinator:
    """A coordinator controlled by the test."""
    return ScriptedCoordinator()


@pytest.fixture()
def caplog_loguru(caplog):
    """Capture loguru output through pytest's caplog."""
    handler_id = logger.add(caplog.handler, format="{message}", level=0)
    yield caplog
    logger.remove(handler_id)
