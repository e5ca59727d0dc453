"""
Authenticated HTTP client for the portal API with single-flight session refresh.

Every request goes out with the session cookies held by the client. When a
protected endpoint answers 401 (access token expired or missing), the client
refreshes the session through the refresh endpoint and resends the request
once. Requests that hit a 401 while a refresh is already in flight wait for
that refresh instead of starting their own, then are all released together.

Key features:
- At most one refresh call in flight per client instance
- Each request retried at most once after a refresh
- Auth endpoints (login/refresh/logout) never enter the refresh flow
- Network failures and timeouts surfaced immediately, never refreshed
- Injected redirect hook fired once per failed refresh, only on protected views
"""

import asyncio
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import httpx

from ..config import Settings, get_settings
from ..utils.logging import get_logger
from .exceptions import (
    HttpError,
    NetworkError,
    RefreshFailedError,
    RequestTimeoutError,
)

logger = get_logger(__name__)

RedirectHook = Callable[[str], None]
LocationProvider = Callable[[], Optional[str]]


class RefreshState(Enum):
    """Session refresh states."""

    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass
class TimeoutConfig:
    """HTTP timeout configuration."""

    request_timeout: float = 15.0  # Read/write/pool timeout per request
    connect_timeout: float = 5.0  # Connection establishment timeout

    def to_httpx(self) -> httpx.Timeout:
        return httpx.Timeout(self.request_timeout, connect=self.connect_timeout)


@dataclass
class ApiRequest:
    """
    An outbound call to the portal API.

    Attributes:
        method: HTTP method
        path: Path relative to the API base URL (e.g. "/contributions")
        headers: Extra request headers
        params: Query parameters
        json: JSON body
        files: Multipart files (upload endpoint)
        retried: Whether this call already went through one refresh cycle
    """

    method: str
    path: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    json: Any = None
    files: Optional[Dict[str, Any]] = None
    retried: bool = False

    def for_retry(self) -> "ApiRequest":
        """Copy of this request marked as already retried."""
        return replace(self, retried=True)


class RefreshCoordinator:
    """
    Refresh state and wait queue owned by one client.

    State changes happen synchronously between awaits on the event loop, so
    checking for an in-flight refresh and entering the refreshing state is
    atomic without a lock.
    """

    def __init__(self):
        self.state = RefreshState.IDLE
        self._waiters: List[asyncio.Future] = []
        self._started_at: Optional[float] = None

        self.refresh_attempts_total = 0
        self.refresh_success_total = 0
        self.refresh_failures_total = 0
        self.queued_requests_total = 0
        self.refresh_latencies: List[float] = []  # last 100, in ms

    @property
    def is_refreshing(self) -> bool:
        return self.state is RefreshState.REFRESHING

    @property
    def pending_waiters(self) -> int:
        """Number of requests currently waiting on the in-flight refresh."""
        return len(self._waiters)

    def begin(self) -> None:
        """Enter the refreshing state."""
        if self.is_refreshing:
            raise RuntimeError("A session refresh is already in flight")
        self.state = RefreshState.REFRESHING
        self.refresh_attempts_total += 1
        self._started_at = time.monotonic()

    def enqueue(self) -> asyncio.Future:
        """Register a waiter released when the in-flight refresh settles."""
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        self.queued_requests_total += 1
        return waiter

    def settle(self, failure: Optional[RefreshFailedError] = None) -> int:
        """
        Leave the refreshing state and release every waiter.

        Waiters resolve with None on success or with the batch failure.
        Waiters cancelled in the meantime are skipped.

        Returns:
            Number of waiters released
        """
        waiters, self._waiters = self._waiters, []
        self.state = RefreshState.IDLE

        if failure is None:
            self.refresh_success_total += 1
            if self._started_at is not None:
                self.refresh_latencies.append(
                    (time.monotonic() - self._started_at) * 1000
                )
                self.refresh_latencies = self.refresh_latencies[-100:]
        else:
            self.refresh_failures_total += 1
        self._started_at = None

        released = 0
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(failure)
                released += 1
        return released

    def get_metrics_summary(self) -> Dict[str, Any]:
        """Refresh counters for health reporting."""
        return {
            "state": self.state.value,
            "refresh_attempts_total": self.refresh_attempts_total,
            "refresh_success_total": self.refresh_success_total,
            "refresh_failures_total": self.refresh_failures_total,
            "queued_requests_total": self.queued_requests_total,
            "pending_waiters": self.pending_waiters,
            "avg_refresh_latency_ms": (
                sum(self.refresh_latencies) / max(1, len(self.refresh_latencies))
            ),
        }


class AuthenticatedHttpClient:
    """
    Cookie-credentialed HTTP client with transparent session refresh.

    Use as an async context manager, or call close() when done.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        location_provider: Optional[LocationProvider] = None,
        redirect: Optional[RedirectHook] = None,
        timeout_config: Optional[TimeoutConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cookies: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Client settings (global settings if omitted)
            location_provider: Returns the embedding application's current location
            redirect: Called with the login location when a refresh fails on a protected view
            timeout_config: Timeout configuration (derived from settings if omitted)
            transport: httpx transport override (tests, custom networking)
            cookies: Initial session cookies
        """
        self.settings = settings or get_settings()
        self.base_url = self.settings.api_base_url
        self.location_provider = location_provider
        self.redirect = redirect
        self.refresh_coordinator = RefreshCoordinator()

        self.timeout_config = timeout_config or TimeoutConfig(
            request_timeout=self.settings.request_timeout_seconds,
            connect_timeout=self.settings.connect_timeout_seconds,
        )

        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_config.to_httpx(),
            headers={
                "Accept": "application/json",
                "User-Agent": f"DonationPortalClient/{self.settings.app_version}",
            },
            cookies=cookies,
            transport=transport,
            follow_redirects=False,
        )

        logger.info(
            "Authenticated HTTP client initialized",
            base_url=self.base_url,
            request_timeout=self.timeout_config.request_timeout,
            refresh_path=self.settings.refresh_path,
        )

    async def close(self):
        """Close the HTTP client and release pooled connections."""
        await self.client.aclose()
        logger.debug("HTTP client closed", base_url=self.base_url)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def cookies(self) -> httpx.Cookies:
        """Session cookies currently held by the client."""
        return self.client.cookies

    def is_auth_endpoint(self, path: str) -> bool:
        """Check whether a path belongs to the login/refresh/logout endpoints."""
        return any(auth_path in path for auth_path in self.settings.auth_endpoint_paths)

    def _should_refresh(self, request: ApiRequest, status_code: int) -> bool:
        return (
            status_code == 401
            and not request.retried
            and not self.is_auth_endpoint(request.path)
        )

    async def send(self, request: ApiRequest) -> httpx.Response:
        """
        Send a request, refreshing the session once on a 401.

        Returns:
            httpx.Response: A non-error response

        Raises:
            NetworkError: No response received (RequestTimeoutError on timeout)
            RefreshFailedError: The session could not be refreshed
            UnauthorizedError: 401 from an auth endpoint, or after a retry
            HttpError: Any other error status
        """
        response = await self._dispatch(request)
        if not response.is_error:
            return response

        error = HttpError.from_response(response, request.method, request.path)
        if not self._should_refresh(request, response.status_code):
            raise error

        if self.refresh_coordinator.is_refreshing:
            await self._wait_for_refresh(request)
        else:
            await self._refresh_session(request, error)

        return await self.send(request.for_retry())

    async def _dispatch(self, request: ApiRequest) -> httpx.Response:
        """Issue one HTTP call, translating transport failures."""
        request_start = time.monotonic()
        try:
            response = await self.client.request(
                request.method,
                request.path,
                headers=request.headers or None,
                params=request.params,
                json=request.json,
                files=request.files,
            )
        except httpx.TimeoutException as e:
            logger.warning(
                "HTTP request timed out",
                method=request.method,
                path=request.path,
                timeout_seconds=self.timeout_config.request_timeout,
            )
            raise RequestTimeoutError(
                f"{request.method} {request.path} timed out",
                method=request.method,
                path=request.path,
            ) from e
        except httpx.RequestError as e:
            logger.warning(
                "HTTP request failed without response",
                method=request.method,
                path=request.path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise NetworkError(
                f"{request.method} {request.path} failed: {e}",
                method=request.method,
                path=request.path,
            ) from e

        logger.debug(
            "HTTP request completed",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            retried=request.retried,
            duration_ms=round((time.monotonic() - request_start) * 1000, 2),
        )
        return response

    async def _refresh_session(self, request: ApiRequest, trigger: HttpError) -> None:
        """Run the refresh for a batch of 401s and release its waiters."""
        coordinator = self.refresh_coordinator
        coordinator.begin()
        logger.info(
            "Access token rejected, refreshing session",
            method=request.method,
            path=request.path,
        )

        refresh_path = self.settings.refresh_path
        try:
            response = await self._dispatch(
                ApiRequest("POST", refresh_path, retried=True)
            )
            if response.is_error:
                raise HttpError.from_response(response, "POST", refresh_path)
        except Exception as e:
            failure = RefreshFailedError.for_request(
                trigger, request.method, request.path, refresh_error=e
            )
            released = coordinator.settle(failure)
            logger.warning(
                "Session refresh failed",
                error=str(e),
                error_type=type(e).__name__,
                released_waiters=released,
            )
            self._redirect_to_login()
            raise failure from e
        except asyncio.CancelledError:
            released = coordinator.settle(
                RefreshFailedError.for_request(trigger, request.method, request.path)
            )
            logger.warning("Session refresh cancelled", released_waiters=released)
            raise

        released = coordinator.settle()
        logger.info("Session refreshed", released_waiters=released)

    async def _wait_for_refresh(self, request: ApiRequest) -> None:
        """Wait for the in-flight refresh; raise if it failed."""
        waiter = self.refresh_coordinator.enqueue()
        logger.debug(
            "Request queued behind session refresh",
            method=request.method,
            path=request.path,
            pending_waiters=self.refresh_coordinator.pending_waiters,
        )

        failure = await waiter
        if failure is not None:
            raise RefreshFailedError.for_request(
                failure,
                request.method,
                request.path,
                refresh_error=failure.refresh_error,
            ) from failure.refresh_error

    def _redirect_to_login(self) -> None:
        """Send the embedding application to login if it shows a protected view."""
        if self.redirect is None:
            return

        location = self.location_provider() if self.location_provider else None
        if location and location.startswith(self.settings.protected_path_prefix):
            logger.info(
                "Redirecting to login after failed refresh",
                location=location,
                target=self.settings.login_path,
            )
            self.redirect(self.settings.login_path)

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Build an ApiRequest from keyword arguments and send it."""
        return await self.send(ApiRequest(method.upper(), path, **kwargs))

    async def get(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)

    def get_metrics_summary(self) -> Dict[str, Any]:
        return self.refresh_coordinator.get_metrics_summary()
