"""Error taxonomy for erpsync.

Request-level errors surface to the callers of cache mutations,
transport-level errors stay inside channel sessions.
"""

from erpsync.api_errors.config import (
    ErrorCode,
    ErrorSeverity,
    error_code_for_status,
)
from erpsync.api_errors.exceptions import (
    DecodeError,
    NetworkError,
    RequestError,
    RequestFailedError,
    SyncError,
    TransportError,
)

__all__ = [
    # Config
    "ErrorCode",
    "ErrorSeverity",
    "error_code_for_status",
    # Exceptions
    "DecodeError",
    "NetworkError",
    "RequestError",
    "RequestFailedError",
    "SyncError",
    "TransportError",
]
