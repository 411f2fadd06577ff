"""Error Configuration.

Defines error codes and severity levels shared by the REST client,
the resource caches and the channel sessions.
"""

from enum import Enum
from typing import Dict, Optional


class ErrorCode(Enum):
    """Standardized error codes for synchronization failures."""

    # Request errors (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Client-side failures
    NETWORK_ERROR = "NETWORK_ERROR"
    DECODE_ERROR = "DECODE_ERROR"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"


class ErrorSeverity(Enum):
    """Severity levels for error logging."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Map HTTP status codes to error codes
STATUS_ERROR_MAP: Dict[int, ErrorCode] = {
    400: ErrorCode.BAD_REQUEST,
    401: ErrorCode.AUTHENTICATION_REQUIRED,
    403: ErrorCode.INSUFFICIENT_PERMISSIONS,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    409: ErrorCode.RESOURCE_CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.RATE_LIMIT_EXCEEDED,
    500: ErrorCode.INTERNAL_ERROR,
    502: ErrorCode.SERVICE_UNAVAILABLE,
    503: ErrorCode.SERVICE_UNAVAILABLE,
    504: ErrorCode.SERVICE_UNAVAILABLE,
}

# Map error codes to severity
ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.BAD_REQUEST: ErrorSeverity.LOW,
    ErrorCode.AUTHENTICATION_REQUIRED: ErrorSeverity.MEDIUM,
    ErrorCode.INSUFFICIENT_PERMISSIONS: ErrorSeverity.MEDIUM,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.RESOURCE_CONFLICT: ErrorSeverity.MEDIUM,
    ErrorCode.VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.RATE_LIMIT_EXCEEDED: ErrorSeverity.MEDIUM,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
    ErrorCode.SERVICE_UNAVAILABLE: ErrorSeverity.HIGH,
    ErrorCode.NETWORK_ERROR: ErrorSeverity.HIGH,
    ErrorCode.DECODE_ERROR: ErrorSeverity.MEDIUM,
    ErrorCode.TRANSPORT_ERROR: ErrorSeverity.LOW,
}


def error_code_for_status(status_code: int) -> ErrorCode:
    """Map an HTTP status code to an ErrorCode.

    Unlisted 4xx codes fall back to BAD_REQUEST and anything else
    to INTERNAL_ERROR.
    """
    code: Optional[ErrorCode] = STATUS_ERROR_MAP.get(status_code)
    if code is not None:
        return code
    if 400 <= status_code < 500:
        return ErrorCode.BAD_REQUEST
    return ErrorCode.INTERNAL_ERROR
