"""Wire and result models for channel sessions."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class Envelope:
    """A decoded channel message: ``{"type": ..., **payload}``.

    The type selects routing; the payload is opaque to the router.
    """

    type: str
    payload: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Flat wire shape, type first."""
        return {"type": self.type, **self.payload}

    def encode(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, message: dict) -> "Envelope":
        payload = {k: v for k, v in message.items() if k != "type"}
        return cls(type=message["type"], payload=payload)


def decode_frame(raw: Union[str, bytes]) -> Optional[Any]:
    """Parse a raw frame, returning None when it is not valid JSON."""
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Connected:
    """connect() reached the OPEN state."""

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Deferred:
    """connect() did not open; real-time updates are deferred.

    Carries the reason for logging and, when the transport failed, the
    TransportError raised for it. The reconnect policy decides whether
    another attempt follows.
    """

    reason: str = ""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return False


ConnectResult = Union[Connected, Deferred]
