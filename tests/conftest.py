"""
Shared test fixtures and configuration for donation portal client tests.

Provides an in-memory fake of the portal API served through
httpx.MockTransport, a navigation recorder standing in for the embedding
application, and clients wired to both.
"""

import asyncio
import inspect
import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

# Set test environment before importing the package
os.environ.update(
    {
        "APP_ENV": "test",
        "LOG_LEVEL": "DEBUG",
    }
)

from dotenv import load_dotenv

load_dotenv()

from donation_portal.clients import AuthenticatedHttpClient, PortalClient
from donation_portal.config import Settings, reset_settings
from donation_portal.utils.logging import configure_logging_from_settings

configure_logging_from_settings(Settings(_env_file=None))

API_PREFIX = "/api"

RouteResult = Union[httpx.Response, Dict[str, Any]]
RouteHandler = Callable[[httpx.Request], RouteResult]


def envelope(data: Any = None, message: str = "Success", **extra: Any) -> Dict[str, Any]:
    """Successful API envelope."""
    body = {"success": True, "message": message, "data": data}
    body.update(extra)
    return body


class FakePortalBackend:
    """
    In-memory stand-in for the portal API.

    Protected routes answer 401 until a refresh succeeds. The refresh
    endpoint can be held open with refresh_gate to let concurrent requests
    pile up behind it.
    """

    PUBLIC_PREFIXES = (
        "/public/",
        "/contact",
        "/auth/login",
        "/auth/logout",
        "/auth/refresh",
    )

    def __init__(self):
        self.authorized = False
        self.always_unauthorized = False
        self.refresh_succeeds = True
        self.refresh_gate: Optional[asyncio.Event] = None
        self.requests: List[httpx.Request] = []
        self.routes: Dict[Tuple[str, str], Union[RouteResult, RouteHandler]] = {}

    def route(self, method: str, path: str, result: Union[RouteResult, RouteHandler]):
        self.routes[(method, path)] = result

    @property
    def calls(self) -> List[Tuple[str, str]]:
        return [(request.method, self.api_path(request)) for request in self.requests]

    @property
    def refresh_calls(self) -> int:
        return self.count("POST", "/auth/refresh")

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, path))

    def last_request(self, method: str, path: str) -> httpx.Request:
        for request in reversed(self.requests):
            if request.method == method and self.api_path(request) == path:
                return request
        raise AssertionError(f"No {method} {path} request recorded")

    @staticmethod
    def api_path(request: httpx.Request) -> str:
        path = request.url.path
        return path[len(API_PREFIX):] if path.startswith(API_PREFIX) else path

    @staticmethod
    def json_body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self.api_path(request)

        route = self.routes.get((request.method, path))
        if (request.method, path) == ("POST", "/auth/refresh") and route is None:
            return await self._refresh()

        if not path.startswith(self.PUBLIC_PREFIXES) and (
            self.always_unauthorized or not self.authorized
        ):
            return httpx.Response(401, json={"success": False, "message": "Unauthorized"})

        result = envelope() if route is None else route
        if callable(result):
            result = result(request)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    async def _refresh(self) -> httpx.Response:
        if self.refresh_gate is not None:
            await self.refresh_gate.wait()
        if not self.refresh_succeeds:
            return httpx.Response(
                401,
                json={"success": False, "message": "Invalid or expired refresh token"},
            )
        self.authorized = True
        return httpx.Response(
            200,
            json=envelope(
                {"accessToken": "fresh-access", "refreshToken": "fresh-refresh"},
                message="Token refreshed successfully",
            ),
        )


class Navigator:
    """Records the embedding application's location and redirects."""

    def __init__(self, location: Optional[str] = "/admin/dashboard"):
        self.location = location
        self.redirects: List[str] = []

    def current(self) -> Optional[str]:
        return self.location

    def go(self, target: str) -> None:
        self.redirects.append(target)
        self.location = target


async def _wait_until(predicate: Callable[[], bool], attempts: int = 200) -> None:
    """Yield to the event loop until predicate holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.001)
    raise AssertionError("Condition not reached")


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake backend, independent of the environment file."""
    reset_settings()
    return Settings(_env_file=None, api_base_url="http://testserver/api")


@pytest.fixture
def backend() -> FakePortalBackend:
    return FakePortalBackend()


@pytest.fixture
def navigator() -> Navigator:
    return Navigator()


@pytest.fixture
async def http_client(settings, backend, navigator):
    """AuthenticatedHttpClient wired to the fake backend and navigator."""
    client = AuthenticatedHttpClient(
        settings,
        location_provider=navigator.current,
        redirect=navigator.go,
        transport=httpx.MockTransport(backend.handler),
    )
    yield client
    await client.close()


@pytest.fixture
async def portal(http_client) -> PortalClient:
    """PortalClient sharing the test HTTP client."""
    return PortalClient(http_client)


@pytest.fixture
def wait_until():
    """Helper that yields to the event loop until a condition holds."""
    return _wait_until
