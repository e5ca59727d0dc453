"""
Admin session state for an embedding application.

AuthSession keeps the signed-in admin user. Token refresh is handled by the
HTTP client; the session only decides what a failed call means for the
signed-in state.
"""

from typing import Optional

from .clients.exceptions import HttpError, NetworkError, ResponseFormatError
from .clients.http_client import RedirectHook
from .clients.portal import PortalClient
from .models import AdminUser
from .permissions import Permission, has_permission
from .utils.logging import get_logger

logger = get_logger(__name__)


class AuthSession:
    """Current admin user plus login/logout operations."""

    def __init__(self, portal: PortalClient, redirect: Optional[RedirectHook] = None):
        self.portal = portal
        self.redirect = redirect
        self.user: Optional[AdminUser] = None
        self.is_loading = False
        self.is_initialized = False

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def has_permission(self, permission: Permission) -> bool:
        """Check a permission against the signed-in user's role."""
        return self.user is not None and has_permission(self.user.role, permission)

    async def initialize(self) -> Optional[AdminUser]:
        """Load the profile for an existing session, if there is one."""
        try:
            response = await self.portal.auth.get_profile()
            if response.success and response.data:
                self.user = response.data
        except (HttpError, NetworkError, ResponseFormatError) as e:
            logger.info(
                "No active admin session",
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self.is_initialized = True
        return self.user

    async def login(self, email: str, password: str) -> bool:
        """Sign in; returns False when the credentials are rejected or the call fails."""
        self.is_loading = True
        try:
            response = await self.portal.auth.login(email, password)
            if response.success and response.data:
                self.user = response.data.user
                logger.info("Admin signed in", user_id=self.user.id, role=self.user.role)
                return True
            logger.info("Login rejected", message=response.message)
            return False
        except (HttpError, NetworkError, ResponseFormatError) as e:
            logger.info("Login failed", error=str(e), error_type=type(e).__name__)
            return False
        finally:
            self.is_loading = False

    async def logout(self) -> None:
        """Sign out locally even when the server call fails, then go to login."""
        self.is_loading = True
        try:
            await self.portal.auth.logout()
        except (HttpError, NetworkError, ResponseFormatError) as e:
            logger.warning("Logout call failed", error=str(e))
        finally:
            self.user = None
            self.is_loading = False

        if self.redirect is not None:
            self.redirect(self.portal.http.settings.login_path)
