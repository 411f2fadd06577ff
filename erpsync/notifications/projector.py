"""Notification projector.

Turns push envelopes from any channel (normally ``global:notifications``)
into a bounded, newest-first list of user notifications, and raises
alerts for the levels worth interrupting the user for.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from erpsync.realtime import WILDCARD, ChannelSession, ConnectionRegistry
from erpsync.resources.events import event_payload
from erpsync.settings import get_settings

from .config import NOTIFICATIONS_CHANNEL, NotificationConfig, NotificationLevel, NotificationModule
from .models import Notification, NotificationAction

logger = logging.getLogger(__name__)

AlertListener = Callable[[Notification], Any]


def _product(data: Mapping[str, Any]) -> Mapping[str, Any]:
    # Inventory events nest the record under "product"; generic ones do not
    product = data.get("product")
    return product if isinstance(product, Mapping) else data


def _contact_created(data):
    return (
        "contact",
        data["id"],
        NotificationLevel.SUCCESS,
        "New Contact Added",
        f"{data['firstName']} {data['lastName']} has been added to CRM",
        NotificationModule.CRM,
        NotificationAction("View Contact", f"/crm/contacts/{data['id']}"),
    )


def _deal_updated(data):
    return (
        "deal",
        data["id"],
        NotificationLevel.INFO,
        "Deal Updated",
        f'Deal "{data["title"]}" has been updated',
        NotificationModule.CRM,
        NotificationAction("View Deal", f"/crm/deals/{data['id']}"),
    )


def _stock_adjusted(data):
    return (
        "stock",
        data["inventory"]["id"],
        NotificationLevel.WARNING,
        "Stock Adjustment",
        f"Inventory levels have been {data['type']}d for a product",
        NotificationModule.INVENTORY,
        NotificationAction("View Inventory", "/inventory/stock"),
    )


def _low_stock_alert(data):
    return (
        "low_stock",
        data["productId"],
        NotificationLevel.ERROR,
        "Low Stock Alert",
        f"{data['productName']} is running low on stock",
        NotificationModule.INVENTORY,
        NotificationAction("Reorder Product", f"/inventory/products/{data['productId']}"),
    )


def _out_of_stock_alert(data):
    product = _product(data)
    return (
        "out_of_stock",
        product["id"],
        NotificationLevel.ERROR,
        "Out of Stock",
        f"Out of stock: {product['name']}",
        NotificationModule.INVENTORY,
        NotificationAction("Reorder Product", f"/inventory/products/{product['id']}"),
    )


def _product_created(data):
    product = _product(data)
    return (
        "product",
        product["id"],
        NotificationLevel.SUCCESS,
        "New Product Added",
        f"New product added: {product['name']}",
        NotificationModule.INVENTORY,
        NotificationAction("View Product", f"/inventory/products/{product['id']}"),
    )


def _employee_created(data):
    return (
        "employee",
        data["id"],
        NotificationLevel.SUCCESS,
        "New Employee Added",
        f"{data['firstName']} {data['lastName']} has joined the team",
        NotificationModule.HRMS,
        NotificationAction("View Profile", f"/hrms/employees/{data['id']}"),
    )


def _leave_request_created(data):
    return (
        "leave",
        data["id"],
        NotificationLevel.INFO,
        "Leave Request Submitted",
        "A new leave request requires approval",
        NotificationModule.HRMS,
        NotificationAction("Review Request", f"/hrms/leave-requests/{data['id']}"),
    )


def _order_status_updated(data):
    status = data["status"]
    return (
        "order",
        data["id"],
        NotificationLevel.SUCCESS if status == "delivered" else NotificationLevel.INFO,
        "Purchase Order Updated",
        f"Order {data['orderNumber']} status changed to {status}",
        NotificationModule.PURCHASE,
        NotificationAction("View Order", f"/purchase/orders/{data['id']}"),
    )


def _payment_received(data):
    return (
        "payment",
        data["id"],
        NotificationLevel.SUCCESS,
        "Payment Received",
        f"Payment of ${data['amount']} has been processed",
        NotificationModule.PAYMENTS,
        NotificationAction("View Payment", f"/payments/{data['id']}"),
    )


NOTIFICATION_BUILDERS: Dict[str, Callable[[Mapping[str, Any]], tuple]] = {
    "contact_created": _contact_created,
    "deal_updated": _deal_updated,
    "stock_adjusted": _stock_adjusted,
    "low_stock_alert": _low_stock_alert,
    "out_of_stock_alert": _out_of_stock_alert,
    "product_created": _product_created,
    "employee_created": _employee_created,
    "leave_request_created": _leave_request_created,
    "order_status_updated": _order_status_updated,
    "payment_received": _payment_received,
}


class NotificationProjector:
    """Bounded, newest-first notification list fed by push envelopes.

    Example:
        projector = NotificationProjector()
        projector.on_alert(lambda n: print(n.title))
        detach = projector.attach(registry)
        ...
        detach()
    """

    def __init__(self, config: Optional[NotificationConfig] = None):
        self.config = config or NotificationConfig.from_settings(get_settings())
        self._notifications: List[Notification] = []
        self._alert_listeners: Dict[AlertListener, None] = {}
        self._last_id_base = ""
        self._id_collisions = 0

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def __len__(self) -> int:
        return len(self._notifications)

    # ── Input ─────────────────────────────────────────────────────────

    def handle(self, message: Mapping[str, Any]) -> Optional[Notification]:
        """Project one envelope. Returns the new notification, if any."""
        kind = message.get("type")
        builder = NOTIFICATION_BUILDERS.get(kind) if isinstance(kind, str) else None
        if builder is None:
            return None

        data = event_payload(message)
        try:
            prefix, ref, level, title, text, module, action = builder(data)
        except (KeyError, TypeError, AttributeError) as exc:
            logger.warning("Skipping %s notification with malformed payload: %s", kind, exc)
            return None

        notification = Notification(
            id=self._next_id(prefix, ref),
            level=level,
            title=title,
            message=text,
            module=module,
            action=action,
        )
        self._notifications.insert(0, notification)
        del self._notifications[self.config.limit:]
        logger.debug("Notification %s: %s", notification.id, title)

        if level in self.config.toast_levels:
            self._alert(notification)
        return notification

    def _next_id(self, prefix: str, ref: Any) -> str:
        base = f"{prefix}_{ref}_{int(time.time() * 1000)}"
        if base == self._last_id_base:
            self._id_collisions += 1
            return f"{base}_{self._id_collisions}"
        self._last_id_base, self._id_collisions = base, 0
        return base

    def attach(self, target: Union[ConnectionRegistry, ChannelSession]) -> Callable[[], None]:
        """Listen to every envelope on a session (or the registry's notifications channel)."""
        if isinstance(target, ConnectionRegistry):
            target = target.get_or_create(NOTIFICATIONS_CHANNEL)
        return target.subscribe(WILDCARD, self.handle)

    # ── Alerts ────────────────────────────────────────────────────────

    def on_alert(self, callback: AlertListener) -> Callable[[], None]:
        self._alert_listeners[callback] = None

        def unsubscribe() -> None:
            self._alert_listeners.pop(callback, None)

        return unsubscribe

    def _alert(self, notification: Notification) -> None:
        for callback in list(self._alert_listeners):
            try:
                callback(notification)
            except Exception:
                logger.exception("Error in alert listener for %s", notification.id)

    # ── State changes ─────────────────────────────────────────────────

    def mark_as_read(self, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id:
                notification.mark_read()
                return True
        return False

    def mark_all_as_read(self) -> int:
        changed = 0
        for notification in self._notifications:
            if not notification.read:
                notification.mark_read()
                changed += 1
        return changed

    def remove(self, notification_id: str) -> bool:
        before = len(self._notifications)
        self._notifications = [n for n in self._notifications if n.id != notification_id]
        return len(self._notifications) < before

    def clear(self) -> None:
        self._notifications.clear()

    def to_list(self) -> List[dict]:
        return [n.to_dict() for n in self._notifications]
