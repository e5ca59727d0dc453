"""
Tests for the route gate middleware.

Covers session-cookie gating of the admin area, the maintenance-mode
redirects of public pages, and the default maintenance lookup.
"""

from functools import partial
from typing import List

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request

from donation_portal.middleware.route_gate import (
    MaintenanceStatus,
    RouteGate,
    RouteGateMiddleware,
)


class MaintenanceStub:
    """Maintenance lookup returning a fixed status and recording the paths it saw."""

    def __init__(self, status: MaintenanceStatus = MaintenanceStatus.OFF):
        self.status = status
        self.paths: List[str] = []

    async def __call__(self, request: Request) -> MaintenanceStatus:
        self.paths.append(request.url.path)
        return self.status


def build_app(settings, lookup) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RouteGateMiddleware, settings=settings, maintenance_lookup=lookup)

    @app.get("/{path:path}")
    async def page(path: str):
        return {"page": "/" + path}

    return app


@pytest.fixture
def maintenance():
    return MaintenanceStub()


@pytest.fixture
def gate(settings):
    return RouteGate(settings)


def make_client(settings, lookup, cookies=None) -> TestClient:
    return TestClient(
        build_app(settings, lookup), follow_redirects=False, cookies=cookies
    )


class TestRouteGateDecisions:
    """Test redirect decisions without the ASGI layer."""

    @pytest.mark.parametrize(
        "path", ["/_next/static/chunk.js", "/api/contributions", "/images/logo", "/favicon.ico"]
    )
    def test_skipped_paths(self, gate, path):
        assert gate.should_skip(path)

    @pytest.mark.parametrize("path", ["/", "/gallery", "/admin/dashboard"])
    def test_gated_paths(self, gate, path):
        assert not gate.should_skip(path)

    def test_protected_without_cookies(self, gate):
        target = gate.session_redirect("/admin/dashboard/contributions", {})
        assert target == "/admin/login?redirect=%2Fadmin%2Fdashboard%2Fcontributions"

    @pytest.mark.parametrize("cookie", ["access_token", "refresh_token"])
    def test_protected_with_any_token(self, gate, cookie):
        assert gate.session_redirect("/admin/dashboard", {cookie: "x"}) is None

    def test_login_with_access_token(self, gate):
        assert (
            gate.session_redirect("/admin/login", {"access_token": "x"})
            == "/admin/dashboard"
        )

    def test_login_with_only_refresh_token_stays(self, gate):
        assert gate.session_redirect("/admin/login", {"refresh_token": "x"}) is None

    def test_login_honours_local_redirect(self, gate):
        target = gate.session_redirect(
            "/admin/login", {"access_token": "x"}, "/admin/dashboard/gallery"
        )
        assert target == "/admin/dashboard/gallery"

    @pytest.mark.parametrize(
        "target", ["https://evil.example", "//evil.example", "/\\evil.example", ""]
    )
    def test_login_ignores_foreign_redirect(self, gate, target):
        assert gate.safe_redirect_target(target) == "/admin/dashboard"

    def test_admin_root(self, gate):
        assert gate.session_redirect("/admin", {}) == "/admin/login"
        assert gate.session_redirect("/admin", {"refresh_token": "x"}) == "/admin/dashboard"

    @pytest.mark.parametrize(
        "path,status,expected",
        [
            ("/", MaintenanceStatus.ON, "/maintenance"),
            ("/gallery", MaintenanceStatus.OFF, None),
            ("/gallery", MaintenanceStatus.UNAVAILABLE, None),
            ("/gallery", MaintenanceStatus.FAILED, None),
            ("/maintenance", MaintenanceStatus.ON, None),
            ("/maintenance", MaintenanceStatus.OFF, "/"),
            ("/maintenance", MaintenanceStatus.UNAVAILABLE, None),
            ("/maintenance", MaintenanceStatus.FAILED, "/"),
        ],
    )
    def test_maintenance_redirect(self, gate, path, status, expected):
        assert gate.maintenance_redirect(path, status) == expected


class TestRouteGateMiddleware:
    """Test the middleware through a FastAPI app."""

    def test_protected_page_redirects_to_login(self, settings, maintenance):
        client = make_client(settings, maintenance)

        response = client.get("/admin/dashboard/contributions")

        assert response.status_code == 307
        assert (
            response.headers["location"]
            == "/admin/login?redirect=%2Fadmin%2Fdashboard%2Fcontributions"
        )
        assert maintenance.paths == []

    def test_protected_page_served_with_cookie(self, settings, maintenance):
        client = make_client(settings, maintenance, cookies={"refresh_token": "r"})

        response = client.get("/admin/dashboard")

        assert response.status_code == 200
        assert response.json() == {"page": "/admin/dashboard"}

    def test_login_redirects_signed_in_admin(self, settings, maintenance):
        client = make_client(settings, maintenance, cookies={"access_token": "a"})

        response = client.get("/admin/login", params={"redirect": "/admin/dashboard/users"})

        assert response.status_code == 307
        assert response.headers["location"] == "/admin/dashboard/users"

    def test_admin_root_redirect(self, settings, maintenance):
        response = make_client(settings, maintenance).get("/admin")

        assert response.headers["location"] == "/admin/login"

    def test_public_page_in_maintenance(self, settings):
        lookup = MaintenanceStub(MaintenanceStatus.ON)
        client = make_client(settings, lookup)

        response = client.get("/gallery")

        assert response.status_code == 307
        assert response.headers["location"] == "/maintenance"
        assert lookup.paths == ["/gallery"]

    def test_public_page_served(self, settings, maintenance):
        response = make_client(settings, maintenance).get("/gallery")

        assert response.status_code == 200
        assert maintenance.paths == ["/gallery"]

    def test_maintenance_page_sends_home_when_off(self, settings, maintenance):
        response = make_client(settings, maintenance).get("/maintenance")

        assert response.status_code == 307
        assert response.headers["location"] == "/"

    def test_admin_area_ignores_maintenance(self, settings):
        lookup = MaintenanceStub(MaintenanceStatus.ON)
        client = make_client(settings, lookup, cookies={"access_token": "a"})

        response = client.get("/admin/dashboard")

        assert response.status_code == 200
        assert lookup.paths == []

    def test_lookup_failure_serves_page(self, settings):
        lookup = MaintenanceStub(MaintenanceStatus.FAILED)

        response = make_client(settings, lookup).get("/")

        assert response.status_code == 200

    def test_maintenance_page_served_when_settings_unavailable(self, settings):
        """An error status from the settings endpoint keeps visitors on the page."""
        lookup = MaintenanceStub(MaintenanceStatus.UNAVAILABLE)

        response = make_client(settings, lookup).get("/maintenance")

        assert response.status_code == 200
        assert response.json() == {"page": "/maintenance"}

    def test_maintenance_page_sends_home_when_lookup_fails(self, settings):
        lookup = MaintenanceStub(MaintenanceStatus.FAILED)

        response = make_client(settings, lookup).get("/maintenance")

        assert response.status_code == 307
        assert response.headers["location"] == "/"

    def test_static_and_api_paths_untouched(self, settings):
        lookup = MaintenanceStub(MaintenanceStatus.ON)
        client = make_client(settings, lookup)

        assert client.get("/api/public/settings").status_code == 200
        assert client.get("/logo.png").status_code == 200
        assert lookup.paths == []


class TestDefaultMaintenanceLookup:
    """Test the lookup against the public settings endpoint."""

    @pytest.fixture
    def request_scope(self) -> Request:
        return Request(
            {
                "type": "http",
                "method": "GET",
                "scheme": "http",
                "server": ("portal.test", 80),
                "root_path": "",
                "path": "/gallery",
                "query_string": b"",
                "headers": [(b"host", b"portal.test")],
            }
        )

    @pytest.fixture
    def middleware(self, settings):
        async def app(scope, receive, send):
            pass

        return RouteGateMiddleware(app, settings=settings)

    def _patch_transport(self, monkeypatch, handler) -> List[httpx.Request]:
        seen: List[httpx.Request] = []

        def record(request):
            seen.append(request)
            return handler(request)

        monkeypatch.setattr(
            httpx,
            "AsyncClient",
            partial(httpx.AsyncClient, transport=httpx.MockTransport(record)),
        )
        return seen

    @pytest.mark.asyncio
    async def test_reads_flag(self, monkeypatch, middleware, request_scope):
        seen = self._patch_transport(
            monkeypatch,
            lambda request: httpx.Response(
                200, json={"success": True, "data": {"maintenanceMode": True}}
            ),
        )

        status = await middleware.fetch_maintenance_mode(request_scope)
        assert status is MaintenanceStatus.ON
        assert str(seen[0].url) == "http://portal.test/api/public/settings"

    @pytest.mark.asyncio
    async def test_missing_data_means_off(self, monkeypatch, middleware, request_scope):
        self._patch_transport(
            monkeypatch, lambda request: httpx.Response(200, json={"success": True})
        )

        status = await middleware.fetch_maintenance_mode(request_scope)
        assert status is MaintenanceStatus.OFF

    @pytest.mark.asyncio
    async def test_error_status_unavailable(self, monkeypatch, middleware, request_scope):
        self._patch_transport(monkeypatch, lambda request: httpx.Response(503))

        status = await middleware.fetch_maintenance_mode(request_scope)
        assert status is MaintenanceStatus.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_network_failure_failed(self, monkeypatch, middleware, request_scope):
        def fail(request):
            raise httpx.ConnectError("refused", request=request)

        self._patch_transport(monkeypatch, fail)

        status = await middleware.fetch_maintenance_mode(request_scope)
        assert status is MaintenanceStatus.FAILED

    @pytest.mark.asyncio
    async def test_non_json_failed(self, monkeypatch, middleware, request_scope):
        self._patch_transport(
            monkeypatch, lambda request: httpx.Response(200, text="<html></html>")
        )

        status = await middleware.fetch_maintenance_mode(request_scope)
        assert status is MaintenanceStatus.FAILED
