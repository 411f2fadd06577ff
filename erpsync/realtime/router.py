"""Event routing for channel sessions."""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Set

from .config import WILDCARD
from .models import Envelope

logger = logging.getLogger(__name__)

Listener = Callable[[dict], Any]


class EventRouter:
    """Dispatches decoded envelopes to type-scoped and wildcard listeners.

    Listeners registered for an exact type receive the payload (the
    envelope without ``type``); wildcard listeners receive the full
    envelope. Exact-type listeners always run before wildcard listeners.
    Each invocation is isolated: a failing listener is logged and the
    remaining ones still run.
    """

    def __init__(self):
        # type -> listener -> registration token (dict keys keep insertion order)
        self._listeners: Dict[str, Dict[Listener, object]] = {}
        self._pending: Set[asyncio.Task] = set()
        self._dispatched = 0
        self._delivered = 0
        self._errors = 0

    def subscribe(self, event_type: str, callback: Listener) -> Callable[[], None]:
        """Register *callback* under *event_type*. Returns an unsubscribe closure."""
        if event_type not in self._listeners:
            self._listeners[event_type] = {}
        token = self._listeners[event_type].setdefault(callback, object())
        logger.debug("Listener subscribed to %s", event_type)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event_type)
            if listeners is None:
                return
            # A closure from before clear() must not remove a later registration
            if listeners.get(callback) is token:
                del listeners[callback]
            if not listeners:
                del self._listeners[event_type]

        return unsubscribe

    def dispatch(self, envelope: Envelope) -> int:
        """Deliver *envelope* to its listeners. Returns the number invoked."""
        self._dispatched += 1
        invoked = 0

        for callback in list(self._listeners.get(envelope.type, ())):
            invoked += 1
            self._invoke(callback, dict(envelope.payload), envelope.type)

        for callback in list(self._listeners.get(WILDCARD, ())):
            invoked += 1
            self._invoke(callback, envelope.to_dict(), envelope.type)

        return invoked

    def _invoke(self, callback: Listener, argument: dict, event_type: str) -> None:
        try:
            result = callback(argument)
        except Exception:
            self._errors += 1
            logger.exception("Error in listener for message type %r", event_type)
            return

        self._delivered += 1
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._pending.add(task)
            task.add_done_callback(lambda t: self._finish(t, event_type))

    def _finish(self, task: asyncio.Task, event_type: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._errors += 1
            logger.error(
                "Async listener for message type %r failed: %s",
                event_type,
                exc,
                exc_info=exc,
            )

    def has_subscribers(self, event_type: str) -> bool:
        return bool(self._listeners.get(event_type))

    @property
    def subscriber_count(self) -> int:
        """Total registrations across all types."""
        return sum(len(listeners) for listeners in self._listeners.values())

    @property
    def types(self) -> List[str]:
        return list(self._listeners)

    async def drain(self) -> None:
        """Wait for scheduled async listeners to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def get_stats(self) -> dict:
        return {
            "types": len(self._listeners),
            "subscribers": self.subscriber_count,
            "dispatched": self._dispatched,
            "delivered": self._delivered,
            "listener_errors": self._errors,
        }

    def clear(self) -> None:
        """Remove every listener."""
        self._listeners.clear()
