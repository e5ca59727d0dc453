"""
Donation portal client.

Async client for the donation transparency portal API with transparent
session refresh, plus the route gate middleware and domain helpers used by
the portal's Python services.
"""

from .clients import (
    ApiRequest,
    AuthenticatedHttpClient,
    HttpError,
    NetworkError,
    PortalClient,
    PortalClientError,
    RefreshFailedError,
    RequestTimeoutError,
    UnauthorizedError,
    create_portal_client,
)
from .config import Settings, get_settings
from .session import AuthSession

__version__ = "0.1.0"

__all__ = [
    "ApiRequest",
    "AuthSession",
    "AuthenticatedHttpClient",
    "HttpError",
    "NetworkError",
    "PortalClient",
    "PortalClientError",
    "RefreshFailedError",
    "RequestTimeoutError",
    "Settings",
    "UnauthorizedError",
    "create_portal_client",
    "get_settings",
]
