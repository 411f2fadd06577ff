"""Configuration for in-app notifications."""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet

from erpsync.realtime import ChannelKey

MAX_NOTIFICATIONS = 50

# Channel the server broadcasts cross-module activity on
NOTIFICATIONS_CHANNEL = ChannelKey("global", "notifications")


class NotificationLevel(str, Enum):
    """Notification severity, as shown to the user."""
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class NotificationModule(str, Enum):
    """ERP module a notification originates from."""
    CRM = "CRM"
    INVENTORY = "Inventory"
    HRMS = "HRMS"
    PURCHASE = "Purchase"
    PAYMENTS = "Payments"


# Levels that also raise a transient alert (toast)
TOAST_LEVELS: FrozenSet[NotificationLevel] = frozenset(
    {NotificationLevel.SUCCESS, NotificationLevel.ERROR}
)


@dataclass
class NotificationConfig:
    """Notification projector configuration."""

    limit: int = MAX_NOTIFICATIONS
    toast_levels: FrozenSet[NotificationLevel] = field(default_factory=lambda: TOAST_LEVELS)

    def __post_init__(self):
        if self.limit < 1:
            raise ValueError(f"limit must be positive, got {self.limit}")

    @classmethod
    def from_settings(cls, settings) -> "NotificationConfig":
        return cls(limit=settings.notification_limit)
