"""
Route gate middleware for the portal site.

Performs the coarse, cookie-presence gating of the admin area and the
maintenance-mode redirects of public pages:
- /admin/dashboard/... requires an access or refresh token cookie
- /admin/login sends signed-in admins on to the dashboard
- /admin redirects to dashboard or login
- public pages redirect to /maintenance while maintenance mode is on

Token validity is not checked here; the API verifies tokens on every call
and the HTTP client sends the user to login when the session cannot be
refreshed.
"""

from enum import Enum
from typing import Awaitable, Callable, Mapping, Optional
from urllib.parse import urlencode

import httpx
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from ..config import Settings, get_settings
from ..utils.logging import clear_request_context, get_logger, set_request_context

logger = get_logger(__name__)


class MaintenanceStatus(str, Enum):
    """Outcome of a maintenance flag lookup."""

    ON = "on"
    OFF = "off"
    # Settings endpoint answered with an error status
    UNAVAILABLE = "unavailable"
    # Lookup raised or the body could not be read
    FAILED = "failed"


MaintenanceLookup = Callable[[Request], Awaitable[MaintenanceStatus]]


class RouteGate:
    """Redirect decisions, independent of the ASGI plumbing."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def should_skip(self, path: str) -> bool:
        """Static assets and API routes are never gated."""
        return "." in path or any(
            path.startswith(prefix) for prefix in self.settings.gate_skip_prefixes
        )

    def is_admin(self, path: str) -> bool:
        return path.startswith(self.settings.admin_path_prefix)

    def is_maintenance_page(self, path: str) -> bool:
        return path == self.settings.maintenance_path

    def needs_maintenance_lookup(self, path: str) -> bool:
        return not self.is_admin(path)

    def maintenance_redirect(
        self, path: str, status: MaintenanceStatus
    ) -> Optional[str]:
        """
        Redirect for public pages and the maintenance page.

        Public pages are served unless maintenance is ON. The maintenance
        page sends visitors home when maintenance is OFF or the lookup
        FAILED, and stays put when the settings endpoint was UNAVAILABLE.
        """
        if self.is_maintenance_page(path):
            if status in (MaintenanceStatus.OFF, MaintenanceStatus.FAILED):
                return "/"
            return None
        if status is MaintenanceStatus.ON:
            return self.settings.maintenance_path
        return None

    def session_redirect(
        self,
        path: str,
        cookies: Mapping[str, str],
        redirect_param: Optional[str] = None,
    ) -> Optional[str]:
        """Redirect for admin routes based on which session cookies are present."""
        has_access_token = self.settings.access_cookie_name in cookies
        has_refresh_token = self.settings.refresh_cookie_name in cookies
        has_any_token = has_access_token or has_refresh_token

        if path.startswith(self.settings.protected_path_prefix):
            if has_any_token:
                return None
            query = urlencode({"redirect": path})
            return f"{self.settings.login_path}?{query}"

        if path == self.settings.login_path:
            if has_access_token:
                return self.safe_redirect_target(redirect_param)
            return None

        if path == self.settings.admin_path_prefix:
            if has_any_token:
                return self.settings.dashboard_path
            return self.settings.login_path

        return None

    def safe_redirect_target(self, target: Optional[str]) -> str:
        """Post-login target; only local paths are honoured."""
        if (
            target
            and target.startswith("/")
            and not target.startswith("//")
            and "\\" not in target
        ):
            return target
        return self.settings.dashboard_path


class RouteGateMiddleware(BaseHTTPMiddleware):
    """Starlette middleware applying RouteGate decisions to page requests."""

    def __init__(
        self,
        app: ASGIApp,
        settings: Optional[Settings] = None,
        maintenance_lookup: Optional[MaintenanceLookup] = None,
    ):
        """
        Initialize route gate middleware.

        Args:
            app: ASGI application
            settings: Client settings (global settings if omitted)
            maintenance_lookup: Returns the MaintenanceStatus for a request
                (defaults to calling the public settings endpoint of the
                same site)
        """
        super().__init__(app)
        self.settings = settings or get_settings()
        self.gate = RouteGate(self.settings)
        self.maintenance_lookup = maintenance_lookup or self.fetch_maintenance_mode

        logger.info(
            "Route gate middleware initialized",
            protected_prefix=self.settings.protected_path_prefix,
            login_path=self.settings.login_path,
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        if self.gate.should_skip(path):
            return await call_next(request)

        set_request_context(method=request.method, path=path)
        try:
            target = await self._resolve_redirect(request, path)
        finally:
            clear_request_context()

        if target is not None:
            logger.debug("Route gate redirect", path=path, target=target)
            return RedirectResponse(url=target, status_code=307)
        return await call_next(request)

    async def _resolve_redirect(self, request: Request, path: str) -> Optional[str]:
        if self.gate.needs_maintenance_lookup(path):
            status = await self.maintenance_lookup(request)
            return self.gate.maintenance_redirect(path, status)

        return self.gate.session_redirect(
            path, request.cookies, request.query_params.get("redirect")
        )

    async def fetch_maintenance_mode(self, request: Request) -> MaintenanceStatus:
        """Read the maintenance flag from the site's public settings endpoint."""
        url = str(request.base_url).rstrip("/") + self.settings.public_settings_path
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.settings_lookup_timeout_seconds
            ) as client:
                response = await client.get(
                    url, headers={"Content-Type": "application/json"}
                )
        except httpx.HTTPError as e:
            logger.warning("Maintenance lookup failed", url=url, error=str(e))
            return MaintenanceStatus.FAILED

        if response.is_error:
            logger.warning(
                "Maintenance lookup returned error status",
                url=url,
                status_code=response.status_code,
            )
            return MaintenanceStatus.UNAVAILABLE

        try:
            body = response.json()
        except ValueError:
            logger.warning("Maintenance lookup returned non-JSON body", url=url)
            return MaintenanceStatus.FAILED

        data = body.get("data") if isinstance(body, dict) else None
        if isinstance(data, dict) and data.get("maintenanceMode"):
            return MaintenanceStatus.ON
        return MaintenanceStatus.OFF
