"""Client modules for the portal REST API."""

from .exceptions import (
    HttpError,
    NetworkError,
    PortalClientError,
    RefreshFailedError,
    RequestTimeoutError,
    ResponseFormatError,
    UnauthorizedError,
)
from .http_client import (
    ApiRequest,
    AuthenticatedHttpClient,
    RefreshCoordinator,
    RefreshState,
    TimeoutConfig,
)
from .portal import PortalClient, create_portal_client

__all__ = [
    "ApiRequest",
    "AuthenticatedHttpClient",
    "HttpError",
    "NetworkError",
    "PortalClient",
    "PortalClientError",
    "RefreshCoordinator",
    "RefreshFailedError",
    "RefreshState",
    "RequestTimeoutError",
    "ResponseFormatError",
    "TimeoutConfig",
    "UnauthorizedError",
    "create_portal_client",
]
