"""Push event classification for resource caches.

Every inbound envelope becomes exactly one of the event variants below;
the cache then applies it with a single ``isinstance`` dispatch.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .models import CONTROL_EVENTS, DEFAULT_REFRESH_EVENTS, Item, ItemId, item_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Created:
    kind: str
    item: Item = field(default_factory=dict)


@dataclass(frozen=True)
class Updated:
    kind: str
    item: Item = field(default_factory=dict)

    @property
    def id(self) -> ItemId:
        return self.item["id"]


@dataclass(frozen=True)
class Deleted:
    kind: str
    id: ItemId = None


@dataclass(frozen=True)
class Refresh:
    """A domain event that reshapes this collection; refetch it."""

    kind: str
    reason: str = ""


@dataclass(frozen=True)
class Control:
    """Connection bookkeeping with no effect on the collection."""

    kind: str


@dataclass(frozen=True)
class Unrecognized:
    kind: str
    payload: Any = None


ResourceEvent = Union[Created, Updated, Deleted, Refresh, Control, Unrecognized]


def event_payload(message: Mapping[str, Any]) -> Any:
    """The record an envelope carries: its ``data`` field, or the rest of it."""
    if "data" in message:
        return message["data"]
    return {k: v for k, v in message.items() if k != "type"}


def _has_suffix(kind: str, suffix: str) -> bool:
    return kind == suffix or kind.endswith("_" + suffix)


def classify_event(
    message: Mapping[str, Any],
    endpoint: str = "",
    refresh_events: Optional[Dict[str, Tuple[str, ...]]] = None,
) -> ResourceEvent:
    """Classify a full envelope (``{"type": ..., ...}``) for *endpoint*."""
    kind = str(message.get("type", ""))
    payload = event_payload(message)
    refresh_events = DEFAULT_REFRESH_EVENTS if refresh_events is None else refresh_events

    if kind in CONTROL_EVENTS:
        return Control(kind)

    if kind in refresh_events:
        fragments = refresh_events[kind]
        if any(fragment in endpoint for fragment in fragments):
            return Refresh(kind, reason=f"{kind} affects {endpoint}")
        return Control(kind)

    for suffix in ("created", "updated", "deleted"):
        if not _has_suffix(kind, suffix):
            continue
        if item_id(payload) is None:
            return Unrecognized(kind, payload)
        if suffix == "created":
            return Created(kind, dict(payload))
        if suffix == "updated":
            return Updated(kind, dict(payload))
        return Deleted(kind, payload["id"])

    return Unrecognized(kind, payload)
