"""
PortalClient: one authenticated HTTP client shared by every resource facade.
"""

from typing import Any, Dict, Optional

import httpx

from ..config import Settings, get_settings
from .http_client import AuthenticatedHttpClient, LocationProvider, RedirectHook
from .resources import (
    ActivityApi,
    AuthApi,
    CommitteesApi,
    ContributionsApi,
    GalleryApi,
    LandDonorsApi,
    PublicApi,
    SettingsApi,
    StatisticsApi,
    UploadApi,
    UsersApi,
)


class PortalClient:
    """
    Entry point for talking to the portal API.

    Example:
        async with create_portal_client(redirect=navigate) as portal:
            page = await portal.contributions.get_all(PaginationParams(page=2))
    """

    def __init__(self, http: AuthenticatedHttpClient):
        self.http = http
        self.auth = AuthApi(http)
        self.users = UsersApi(http)
        self.committees = CommitteesApi(http)
        self.contributions = ContributionsApi(http)
        self.land_donors = LandDonorsApi(http)
        self.gallery = GalleryApi(http)
        self.settings = SettingsApi(http)
        self.activity = ActivityApi(http)
        self.statistics = StatisticsApi(http)
        self.upload = UploadApi(http)
        self.public = PublicApi(http)

    async def close(self) -> None:
        await self.http.close()

    async def __aenter__(self) -> "PortalClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def get_metrics_summary(self) -> Dict[str, Any]:
        return self.http.get_metrics_summary()


def create_portal_client(
    settings: Optional[Settings] = None,
    *,
    location_provider: Optional[LocationProvider] = None,
    redirect: Optional[RedirectHook] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cookies: Optional[Dict[str, str]] = None,
) -> PortalClient:
    """
    Create a PortalClient with a fresh AuthenticatedHttpClient.

    Args:
        settings: Client settings (global settings if omitted)
        location_provider: Returns the embedding application's current location
        redirect: Navigation hook used when the session cannot be refreshed
        transport: httpx transport override
        cookies: Initial session cookies
    """
    http = AuthenticatedHttpClient(
        settings or get_settings(),
        location_provider=location_provider,
        redirect=redirect,
        transport=transport,
        cookies=cookies,
    )
    return PortalClient(http)
