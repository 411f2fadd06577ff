"""Custom Exception Hierarchy.

Typed exceptions for the two failure families that can reach a caller:
request-level failures from the REST client, and transport-level failures
that channel sessions absorb and report as a deferred connect.
"""

from typing import Any, Dict, List, Optional

from erpsync.api_errors.config import (
    ERROR_SEVERITY_MAP,
    ErrorCode,
    ErrorSeverity,
    error_code_for_status,
)


class SyncError(Exception):
    """Base exception for all erpsync errors.

    All custom exceptions inherit from this, allowing a single
    handler to catch the entire hierarchy.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or []

    @property
    def severity(self) -> ErrorSeverity:
        return ERROR_SEVERITY_MAP.get(self.error_code, ErrorSeverity.MEDIUM)

    def to_dict(self) -> dict:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "details": self.details,
        }


class RequestError(SyncError):
    """Raised when a REST request against a resource endpoint fails."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        method: str = "",
        url: str = "",
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        super().__init__(message, error_code, details)
        self.method = method
        self.url = url


class RequestFailedError(RequestError):
    """Raised when the server answers with a non-success status."""

    def __init__(
        self,
        status_code: int,
        method: str = "",
        url: str = "",
        body: Optional[str] = None,
    ):
        details = []
        if body:
            details = [{"body": body[:500]}]
        super().__init__(
            f"HTTP error! status: {status_code}",
            error_code_for_status(status_code),
            method=method,
            url=url,
            details=details,
        )
        self.status_code = status_code


class NetworkError(RequestError):
    """Raised when the request never produced a response."""

    def __init__(self, message: str = "Network request failed", method: str = "", url: str = ""):
        super().__init__(message, ErrorCode.NETWORK_ERROR, method=method, url=url)


class DecodeError(RequestError):
    """Raised when a success response body is not valid JSON."""

    def __init__(self, message: str = "Response body is not valid JSON", method: str = "", url: str = ""):
        super().__init__(message, ErrorCode.DECODE_ERROR, method=method, url=url)


class TransportError(SyncError):
    """Raised inside a channel session when the duplex transport fails.

    Never propagates out of ChannelSession.connect(); it is converted
    into a Deferred result and handed to the reconnect policy.
    """

    def __init__(self, message: str = "Channel transport failed", channel: str = ""):
        super().__init__(message, ErrorCode.TRANSPORT_ERROR)
        self.channel = channel
