"""Channel sessions: one recoverable duplex connection per channel key.

A session owns the transport for a single ChannelKey, runs the
connect/reconnect state machine and hands decoded envelopes to its
EventRouter. Transport failures never reach the caller: connect()
resolves to Deferred and the reconnect policy takes over, so the
application keeps working from its last known state.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import websockets

from erpsync.api_errors import TransportError
from erpsync.logging_config import LogContext

from .config import ChannelKey, RealtimeConfig, SessionState
from .models import Connected, ConnectResult, Deferred, Envelope, decode_frame
from .reconnection import compute_delay, should_retry
from .router import EventRouter

logger = logging.getLogger(__name__)

# Opens a transport for a URL. The returned object must support
# ``await send(str)``, ``await close()`` and ``async for frame in transport``.
Connector = Callable[[str], Awaitable[Any]]


def websocket_connector(config: RealtimeConfig) -> Connector:
    """Connector backed by the ``websockets`` client."""

    async def connect(url: str):
        return await websockets.connect(
            url,
            open_timeout=config.open_timeout,
            ping_interval=config.ping_interval,
        )

    return connect


class ChannelSession:
    """Maintains one logical duplex connection for a ChannelKey.

    Example:
        session = ChannelSession(ChannelKey("crm", "contacts"))
        unsubscribe = session.subscribe("contact_created", handle_contact)
        result = await session.connect()
        if not result.ok:
            ...  # keep working without push updates
        await session.disconnect()
    """

    def __init__(
        self,
        key: ChannelKey,
        config: Optional[RealtimeConfig] = None,
        connector: Optional[Connector] = None,
    ):
        self._key = key
        self._config = config or RealtimeConfig()
        self._connector = connector or websocket_connector(self._config)
        self._router = EventRouter()
        self._state = SessionState.IDLE
        self._transport: Any = None
        self._connect_task: Optional[asyncio.Task] = None
        self._listen_task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._manual_close = False
        self._gave_up = False
        self.reconnect_attempts = 0
        self.connection_attempts = 0
        self.messages_received = 0

    # ── Properties ────────────────────────────────────────────────────

    @property
    def key(self) -> ChannelKey:
        return self._key

    @property
    def url(self) -> str:
        return self._config.channel_url(self._key)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state == SessionState.OPEN

    @property
    def manual_close(self) -> bool:
        return self._manual_close

    @property
    def router(self) -> EventRouter:
        return self._router

    @property
    def reconnect_pending(self) -> bool:
        """True while an automatic reconnect is scheduled or running."""
        if self._reconnect_handle is not None:
            return True
        return self._reconnect_task is not None and not self._reconnect_task.done()

    # ── Subscriptions ─────────────────────────────────────────────────

    def subscribe(self, event_type: str, callback: Callable[[dict], Any]) -> Callable[[], None]:
        """Register a listener for *event_type* (``"*"`` for every message)."""
        return self._router.subscribe(event_type, callback)

    # ── Lifecycle ─────────────────────────────────────────────────────

    def start(self) -> "asyncio.Future[ConnectResult]":
        """Begin connecting without waiting. Returns the in-flight attempt."""
        if self._state == SessionState.OPEN:
            done = asyncio.get_running_loop().create_future()
            done.set_result(Connected())
            return done

        self._manual_close = False
        if self._connect_task is not None and not self._connect_task.done():
            self._state = SessionState.CONNECTING
            return self._connect_task

        self._state = SessionState.CONNECTING
        self._connect_task = asyncio.ensure_future(self._open())
        return self._connect_task

    async def connect(self) -> ConnectResult:
        """Open the channel, or join the attempt already in flight.

        Never raises on transport failure; returns Deferred instead.
        """
        if self._state == SessionState.OPEN:
            return Connected()
        task = self.start()
        return await asyncio.shield(task)

    async def _open(self) -> ConnectResult:
        self.connection_attempts += 1
        try:
            transport = await self._connector(self.url)
        except Exception as exc:
            error = TransportError(f"Connect failed: {exc}", channel=str(self._key))
            error.__cause__ = exc
            logger.debug("Channel %s connect failed: %s", self._key, exc)
            if self._state == SessionState.CONNECTING:
                self._state = SessionState.IDLE
            self._handle_unexpected_close()
            return Deferred(error.message, error=error)

        if self._manual_close:
            # disconnect() arrived while connecting; drop the late transport
            await self._close_transport(transport)
            self._state = SessionState.CLOSED
            logger.debug("Channel %s opened after disconnect; closed immediately", self._key)
            return Deferred("disconnected while connecting")

        self._transport = transport
        self._state = SessionState.OPEN
        self.reconnect_attempts = 0
        self._gave_up = False
        self._listen_task = asyncio.ensure_future(self._listen(transport))
        logger.info("Channel %s connected", self._key)
        return Connected()

    async def _listen(self, transport: Any) -> None:
        """Read frames until the transport closes, then hand over to reconnect."""
        try:
            async for frame in transport:
                self._ingest(frame)
        except websockets.ConnectionClosed as exc:
            logger.info("Channel %s closed by remote: %s", self._key, exc)
        except Exception as exc:
            logger.warning("Channel %s transport error: %s", self._key, exc)
        finally:
            if self._transport is transport:
                self._transport = None
                self._state = SessionState.CLOSED

        if not self._manual_close and self._transport is None:
            self._handle_unexpected_close()

    def _ingest(self, frame: Any) -> None:
        message = decode_frame(frame)
        if message is None:
            # Malformed frames are dropped quietly
            logger.debug("Channel %s dropped unparseable frame", self._key)
            return

        if not isinstance(message, dict) or not isinstance(message.get("type"), str) or not message["type"]:
            logger.warning("Received channel message without type on %s: %r", self._key, message)
            return

        self.messages_received += 1
        with LogContext(channel=str(self._key)):
            self._router.dispatch(Envelope.from_dict(message))

    # ── Reconnect ─────────────────────────────────────────────────────

    def _handle_unexpected_close(self) -> None:
        if self._manual_close:
            return

        policy = self._config.reconnect
        if not should_retry(self.reconnect_attempts, policy):
            if not self._gave_up:
                self._gave_up = True
                logger.warning(
                    "Max reconnect attempts reached for %s; continuing without real-time updates",
                    self._key,
                )
            return

        delay = compute_delay(self.reconnect_attempts, policy)
        self.reconnect_attempts += 1
        logger.info(
            "Attempting to reconnect %s (%d/%d) in %.2fs",
            self._key,
            self.reconnect_attempts,
            policy.max_attempts,
            delay,
        )
        self._cancel_reconnect_timer()
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_handle = None
        if self._manual_close:
            return
        self._reconnect_task = asyncio.ensure_future(self.connect())

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    # ── Outbound ──────────────────────────────────────────────────────

    async def send(self, event_type: str, payload: Optional[dict] = None) -> bool:
        """Send ``{type, **payload}``. Fire-and-forget; False unless OPEN."""
        if self._state != SessionState.OPEN or self._transport is None:
            logger.warning("Channel %s not connected. Message not sent.", self._key)
            return False

        envelope = Envelope(type=event_type, payload=dict(payload or {}))
        try:
            await self._transport.send(envelope.encode())
            return True
        except Exception as exc:
            logger.error("Error sending %r on %s: %s", event_type, self._key, exc)
            return False

    # ── Teardown ──────────────────────────────────────────────────────

    async def disconnect(self) -> None:
        """Close the channel for good. Idempotent.

        Cancels any pending reconnect, suppresses further automatic
        reconnects and clears every subscription. A transport still
        being opened is closed as soon as it arrives.
        """
        self._manual_close = True
        self._cancel_reconnect_timer()
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None

        transport, self._transport = self._transport, None
        if transport is not None:
            self._state = SessionState.CLOSING
            await self._close_transport(transport)
        if self._listen_task is not None and not self._listen_task.done():
            self._listen_task.cancel()
        self._listen_task = None

        self._state = SessionState.CLOSED
        self._router.clear()
        logger.debug("Channel %s disconnected", self._key)

    async def _close_transport(self, transport: Any) -> None:
        try:
            await transport.close()
        except Exception as exc:
            logger.debug("Error closing transport for %s: %s", self._key, exc)

    def get_stats(self) -> dict:
        return {
            "channel": str(self._key),
            "state": self._state.value,
            "reconnect_attempts": self.reconnect_attempts,
            "connection_attempts": self.connection_attempts,
            "messages_received": self.messages_received,
            "manual_close": self._manual_close,
            **{f"router_{k}": v for k, v in self._router.get_stats().items()},
        }

    def __repr__(self) -> str:
        return f"ChannelSession({self._key!s}, state={self._state.value})"
