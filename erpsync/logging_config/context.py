"""Log Context Management.

Context-local binding of request IDs, channel keys and endpoints
into log entries, using contextvars so concurrent asyncio tasks
never see each other's values.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


_request_id_var: ContextVar[str] = ContextVar("request_id", default="")
_channel_var: ContextVar[str] = ContextVar("channel", default="")
_endpoint_var: ContextVar[str] = ContextVar("endpoint", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})


def generate_request_id() -> str:
    """Generate a unique request ID using UUID4."""
    return str(uuid.uuid4())


def get_request_id() -> str:
    """Get the current request ID from context."""
    return _request_id_var.get()


def get_channel() -> str:
    """Get the current channel key from context."""
    return _channel_var.get()


def get_endpoint() -> str:
    """Get the current REST endpoint from context."""
    return _endpoint_var.get()


def get_context_dict() -> dict[str, Any]:
    """Get all context variables as a dictionary for log binding."""
    ctx = {}
    req_id = _request_id_var.get()
    if req_id:
        ctx["request_id"] = req_id
    channel = _channel_var.get()
    if channel:
        ctx["channel"] = channel
    endpoint = _endpoint_var.get()
    if endpoint:
        ctx["endpoint"] = endpoint
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@dataclass
class LogContext:
    """Context manager for scoped logging context.

    Binds request_id, channel and endpoint to all log entries within
    the context and restores the previous values on exit, so contexts
    nest cleanly.

    Example:
        with LogContext(channel="crm:contacts"):
            logger.info("dispatching")  # includes channel
    """

    request_id: str = ""
    channel: str = ""
    endpoint: str = ""
    extra: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    _tokens: list = field(default_factory=list, repr=False)

    def __enter__(self) -> "LogContext":
        self._tokens = [
            (_request_id_var, _request_id_var.set(self.request_id or _request_id_var.get())),
            (_channel_var, _channel_var.set(self.channel or _channel_var.get())),
            (_endpoint_var, _endpoint_var.set(self.endpoint or _endpoint_var.get())),
            (_extra_context_var, _extra_context_var.set({**_extra_context_var.get(), **self.extra})),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since context was created."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def bind(self, **kwargs: Any) -> None:
        """Add extra key-value pairs to the context."""
        current = _extra_context_var.get()
        _extra_context_var.set({**current, **kwargs})
        self.extra.update(kwargs)
