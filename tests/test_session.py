"""
Tests for AuthSession and the portal client factory.
"""

import httpx
import pytest

from donation_portal import AuthSession, RefreshFailedError, create_portal_client
from donation_portal.permissions import Permission

PROFILE = {
    "success": True,
    "data": {"_id": "u1", "email": "admin@example.org", "name": "Admin", "role": "admin"},
}


@pytest.fixture
def session(portal, navigator):
    return AuthSession(portal, redirect=navigator.go)


class TestInitialize:
    """Test session bootstrap from existing cookies."""

    @pytest.mark.asyncio
    async def test_loads_profile(self, session, backend):
        backend.authorized = True
        backend.route("GET", "/auth/me", PROFILE)

        user = await session.initialize()

        assert user.email == "admin@example.org"
        assert session.is_authenticated
        assert session.is_initialized

    @pytest.mark.asyncio
    async def test_expired_session_left_signed_out(self, session, backend, navigator):
        navigator.location = "/admin/login"
        backend.refresh_succeeds = False

        user = await session.initialize()

        assert user is None
        assert not session.is_authenticated
        assert session.is_initialized
        assert navigator.redirects == []

    @pytest.mark.asyncio
    async def test_network_failure_left_signed_out(self, session, backend):
        def down(request):
            raise httpx.ConnectError("unreachable", request=request)

        backend.authorized = True
        backend.route("GET", "/auth/me", down)

        assert await session.initialize() is None
        assert session.is_initialized


class TestLoginLogout:
    """Test login and logout."""

    @pytest.mark.asyncio
    async def test_login_success(self, session, backend):
        backend.route(
            "POST",
            "/auth/login",
            {"success": True, "data": {"user": PROFILE["data"]}},
        )

        assert await session.login("admin@example.org", "pw") is True
        assert session.user.role == "admin"
        assert not session.is_loading

    @pytest.mark.asyncio
    async def test_login_rejected(self, session, backend):
        backend.route(
            "POST",
            "/auth/login",
            httpx.Response(401, json={"success": False, "message": "Invalid credentials"}),
        )

        assert await session.login("admin@example.org", "wrong") is False
        assert not session.is_authenticated
        assert backend.refresh_calls == 0

    @pytest.mark.asyncio
    async def test_logout_redirects_to_login(self, session, backend, navigator):
        backend.route("POST", "/auth/login", {"success": True, "data": {"user": PROFILE["data"]}})
        await session.login("admin@example.org", "pw")

        await session.logout()

        assert backend.count("POST", "/auth/logout") == 1
        assert session.user is None
        assert navigator.redirects == ["/admin/login"]

    @pytest.mark.asyncio
    async def test_logout_clears_user_when_call_fails(self, session, backend, navigator):
        backend.route("POST", "/auth/logout", httpx.Response(500, json={"success": False}))
        backend.route("POST", "/auth/login", {"success": True, "data": {"user": PROFILE["data"]}})
        await session.login("admin@example.org", "pw")

        await session.logout()

        assert not session.is_authenticated
        assert navigator.redirects == ["/admin/login"]


class TestSessionPermissions:
    """Test permission checks for the signed-in user."""

    @pytest.mark.asyncio
    async def test_permissions_follow_role(self, session, backend):
        backend.authorized = True
        backend.route("GET", "/auth/me", PROFILE)
        await session.initialize()

        assert session.has_permission(Permission.MANAGE_GALLERY)
        assert not session.has_permission(Permission.MANAGE_USERS)

    @pytest.mark.asyncio
    async def test_signed_out_has_no_permissions(self, session):
        assert not session.has_permission(Permission.UPLOAD_IMAGES)


@pytest.mark.integration
class TestCreatePortalClient:
    """Test the client factory."""

    @pytest.mark.asyncio
    async def test_factory_wires_hooks(self, settings, backend, navigator):
        backend.refresh_succeeds = False

        async with create_portal_client(
            settings,
            location_provider=navigator.current,
            redirect=navigator.go,
            transport=httpx.MockTransport(backend.handler),
        ) as portal:
            with pytest.raises(RefreshFailedError):
                await portal.users.get_all()
            metrics = portal.get_metrics_summary()

        assert navigator.redirects == ["/admin/login"]
        assert metrics["refresh_failures_total"] == 1
