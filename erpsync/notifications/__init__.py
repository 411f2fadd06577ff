"""In-app notifications projected from push events."""

from erpsync.notifications.config import (
    MAX_NOTIFICATIONS,
    NOTIFICATIONS_CHANNEL,
    TOAST_LEVELS,
    NotificationConfig,
    NotificationLevel,
    NotificationModule,
)
from erpsync.notifications.models import Notification, NotificationAction
from erpsync.notifications.projector import NOTIFICATION_BUILDERS, NotificationProjector

__all__ = [
    # Config
    "MAX_NOTIFICATIONS",
    "NOTIFICATIONS_CHANNEL",
    "TOAST_LEVELS",
    "NotificationConfig",
    "NotificationLevel",
    "NotificationModule",
    # Models
    "Notification",
    "NotificationAction",
    # Projector
    "NOTIFICATION_BUILDERS",
    "NotificationProjector",
]
