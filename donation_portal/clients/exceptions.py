"""Exceptions raised by the portal HTTP client."""

import json
from typing import Any, Dict, List, Optional

import httpx


class PortalClientError(Exception):
    """Base exception for portal client operations."""

    pass


class NetworkError(PortalClientError):
    """Raised when no response was received (connection failure, protocol error)."""

    def __init__(self, message: str, method: str = "", path: str = ""):
        super().__init__(message)
        self.method = method
        self.path = path


class RequestTimeoutError(NetworkError):
    """Raised when a request exceeds its timeout."""

    pass


def _parse_body(response: httpx.Response) -> Any:
    """Decode a response body as JSON, falling back to text."""
    if not response.content:
        return None
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text


class HttpError(PortalClientError):
    """
    Raised for a response with an error status.

    Attributes:
        status: HTTP status code
        body: Decoded response body (envelope dict, text, or None)
        method: Request method
        path: Request path relative to the API base URL
    """

    def __init__(
        self, status: int, body: Any = None, method: str = "", path: str = ""
    ):
        self.status = status
        self.body = body
        self.method = method
        self.path = path
        super().__init__(f"{method} {path} failed with status {status}: {self.message}")

    @property
    def message(self) -> str:
        """Error message from the API envelope, or the reason phrase."""
        if isinstance(self.body, dict) and self.body.get("message"):
            return str(self.body["message"])
        if isinstance(self.body, str) and self.body:
            return self.body[:200]
        return httpx.codes.get_reason_phrase(self.status) or "Unknown error"

    @property
    def errors(self) -> Dict[str, List[str]]:
        """Field validation errors from the API envelope (422 responses)."""
        if isinstance(self.body, dict) and isinstance(self.body.get("errors"), dict):
            return self.body["errors"]
        return {}

    @classmethod
    def from_response(
        cls, response: httpx.Response, method: str = "", path: str = ""
    ) -> "HttpError":
        """Build the matching error type for a response."""
        error_cls = UnauthorizedError if response.status_code == 401 else HttpError
        return error_cls(
            status=response.status_code,
            body=_parse_body(response),
            method=method,
            path=path,
        )


class UnauthorizedError(HttpError):
    """Raised for a 401 response that is surfaced to the caller."""

    pass


class RefreshFailedError(UnauthorizedError):
    """
    Raised when the session could not be refreshed.

    Every request that triggered or waited on the failed refresh receives
    one. Status and body are those of the 401 that started the refresh.
    """

    def __init__(
        self,
        status: int = 401,
        body: Any = None,
        method: str = "",
        path: str = "",
        refresh_error: Optional[BaseException] = None,
    ):
        super().__init__(status=status, body=body, method=method, path=path)
        self.refresh_error = refresh_error

    @classmethod
    def for_request(
        cls,
        trigger: HttpError,
        method: str,
        path: str,
        refresh_error: Optional[BaseException] = None,
    ) -> "RefreshFailedError":
        """Build the failure surfaced to one request of a failed refresh batch."""
        return cls(
            status=trigger.status,
            body=trigger.body,
            method=method,
            path=path,
            refresh_error=refresh_error,
        )


class ResponseFormatError(PortalClientError):
    """Raised when a successful response does not carry the expected envelope."""

    def __init__(self, message: str, status: int = 0, path: str = ""):
        super().__init__(message)
        self.status = status
        self.path = path
