"""Configuration for real-time resource channels."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

logger = logging.getLogger(__name__)

WILDCARD = "*"
BROADCAST_ID = "all"


class SessionState(str, Enum):
    """Lifecycle states for a channel session."""
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class ReconnectStrategy(str, Enum):
    """Delay strategies between automatic reconnect attempts."""
    CONSTANT = "constant"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"


@dataclass(frozen=True)
class ChannelKey:
    """Identity of one logical channel: (resource type, resource id).

    The id is normalised to its string form, so ``ChannelKey("crm", 1)``
    and ``ChannelKey("crm", "1")`` address the same channel.
    """

    resource_type: str
    resource_id: Union[str, int] = BROADCAST_ID

    def __post_init__(self):
        if not self.resource_type:
            raise ValueError("resource_type must be a non-empty string")
        object.__setattr__(self, "resource_id", str(self.resource_id))

    @property
    def path(self) -> str:
        """URL path segment for the channel, ``/<type>/<id>``."""
        return f"/{self.resource_type}/{self.resource_id}"

    @property
    def is_broadcast(self) -> bool:
        return self.resource_id == BROADCAST_ID

    @classmethod
    def parse(cls, value: str) -> "ChannelKey":
        """Parse ``type:id`` or ``type/id``; a bare type means the broadcast id."""
        sep = ":" if ":" in value else "/"
        resource_type, _, resource_id = value.strip("/").partition(sep)
        return cls(resource_type, resource_id or BROADCAST_ID)

    def __str__(self) -> str:
        return f"{self.resource_type}:{self.resource_id}"


@dataclass
class ReconnectPolicy:
    """Bounded automatic reconnect policy.

    Defaults to a fixed interval with a hard cap on attempts and no
    jitter. LINEAR and EXPONENTIAL strategies are available but the
    bounded-then-silent contract is the same for all of them.
    """

    interval_seconds: float = 3.0
    max_attempts: int = 5
    strategy: ReconnectStrategy = ReconnectStrategy.CONSTANT
    max_delay: float = 60.0
    jitter_max: float = 0.0

    def __post_init__(self):
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")


@dataclass
class RealtimeConfig:
    """Master configuration for channel sessions."""

    ws_base_url: str = "ws://localhost:5000/ws"
    open_timeout: float = 10.0
    ping_interval: float = 20.0
    reconnect: ReconnectPolicy = field(default_factory=ReconnectPolicy)

    @classmethod
    def from_settings(cls, settings) -> "RealtimeConfig":
        return cls(
            ws_base_url=settings.ws_base_url,
            open_timeout=settings.ws_open_timeout,
            ping_interval=settings.ws_ping_interval,
            reconnect=ReconnectPolicy(
                interval_seconds=settings.reconnect_interval_seconds,
                max_attempts=settings.max_reconnect_attempts,
            ),
        )

    def channel_url(self, key: ChannelKey) -> str:
        return self.ws_base_url.rstrip("/") + key.path
