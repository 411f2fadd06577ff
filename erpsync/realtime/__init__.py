"""Real-time channel sessions: connect, multiplex and recover push channels."""

from .config import (
    BROADCAST_ID,
    WILDCARD,
    ChannelKey,
    RealtimeConfig,
    ReconnectPolicy,
    ReconnectStrategy,
    SessionState,
)
from .models import Connected, ConnectResult, Deferred, Envelope, decode_frame
from .reconnection import compute_delay, should_retry
from .router import EventRouter
from .session import ChannelSession, websocket_connector
from .registry import ConnectionRegistry

__all__ = [
    # Config
    "BROADCAST_ID",
    "WILDCARD",
    "ChannelKey",
    "RealtimeConfig",
    "ReconnectPolicy",
    "ReconnectStrategy",
    "SessionState",
    # Models
    "Connected",
    "ConnectResult",
    "Deferred",
    "Envelope",
    "decode_frame",
    # Reconnection
    "compute_delay",
    "should_retry",
    # Router
    "EventRouter",
    # Session
    "ChannelSession",
    "websocket_connector",
    # Registry
    "ConnectionRegistry",
]
