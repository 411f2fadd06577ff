"""Data models for in-app notifications."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from erpsync.notifications.config import NotificationLevel, NotificationModule


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NotificationAction:
    """Link the user can follow from a notification."""

    label: str
    url: str

    def to_dict(self) -> dict:
        return {"label": self.label, "url": self.url}


@dataclass
class Notification:
    """A user-facing record derived from one push event."""

    id: str
    level: NotificationLevel
    title: str
    message: str
    module: NotificationModule
    timestamp: datetime = field(default_factory=_now)
    read: bool = False
    action: Optional[NotificationAction] = None

    def mark_read(self) -> None:
        self.read = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.level.value,
            "title": self.title,
            "message": self.message,
            "module": self.module.value,
            "timestamp": self.timestamp.isoformat(),
            "read": self.read,
            "action": self.action.to_dict() if self.action else None,
        }
