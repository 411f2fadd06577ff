"""Connection registry: at most one live session per channel key."""

import logging
from typing import Dict, List, Optional, Union

from .config import BROADCAST_ID, ChannelKey, RealtimeConfig, SessionState
from .session import ChannelSession, Connector

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """Keyed store of shared channel sessions.

    An explicit service object rather than a module-level map: create one
    per application (or per test), and tear it down with close_all() or
    by using it as an async context manager. All access happens on one
    event loop, so no locking is needed.

    Example:
        async with ConnectionRegistry(config) as registry:
            session = registry.get_or_create("crm", "contacts")
            session.subscribe("*", handle_message)
    """

    def __init__(
        self,
        config: Optional[RealtimeConfig] = None,
        connector: Optional[Connector] = None,
    ):
        self._config = config or RealtimeConfig()
        self._connector = connector
        self._sessions: Dict[ChannelKey, ChannelSession] = {}

    @property
    def config(self) -> RealtimeConfig:
        return self._config

    @staticmethod
    def _key(
        key_or_type: Union[ChannelKey, str],
        resource_id: Union[str, int] = BROADCAST_ID,
    ) -> ChannelKey:
        if isinstance(key_or_type, ChannelKey):
            return key_or_type
        return ChannelKey(key_or_type, resource_id)

    def get_or_create(
        self,
        key_or_type: Union[ChannelKey, str],
        resource_id: Union[str, int] = BROADCAST_ID,
    ) -> ChannelSession:
        """Return the session for a key, creating and connecting it if absent.

        A new session starts connecting in the background; its outcome is
        never raised here, the session degrades to offline on failure.
        """
        key = self._key(key_or_type, resource_id)
        session = self._sessions.get(key)
        if session is not None:
            return session

        session = ChannelSession(key, config=self._config, connector=self._connector)
        self._sessions[key] = session
        session.start()
        logger.info("Registered channel session %s", key)
        return session

    def get(
        self,
        key_or_type: Union[ChannelKey, str],
        resource_id: Union[str, int] = BROADCAST_ID,
    ) -> Optional[ChannelSession]:
        """Retrieve a session without creating one."""
        return self._sessions.get(self._key(key_or_type, resource_id))

    async def close(
        self,
        key_or_type: Union[ChannelKey, str],
        resource_id: Union[str, int] = BROADCAST_ID,
    ) -> bool:
        """Disconnect and forget a session. Returns True if one existed."""
        session = self._sessions.pop(self._key(key_or_type, resource_id), None)
        if session is None:
            return False
        await session.disconnect()
        logger.info("Closed channel session %s", session.key)
        return True

    async def close_all(self) -> None:
        """Disconnect every session and clear the registry."""
        sessions = list(self._sessions.values())
        self._sessions.clear()
        for session in sessions:
            await session.disconnect()
        if sessions:
            logger.info("Closed %d channel sessions", len(sessions))

    def keys(self) -> List[ChannelKey]:
        return list(self._sessions)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            key = ChannelKey.parse(key)
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get_stats(self) -> dict:
        """Return session counts, overall and by state."""
        by_state = {state.value: 0 for state in SessionState}
        for session in self._sessions.values():
            by_state[session.state.value] += 1
        return {
            "total_sessions": len(self._sessions),
            "by_state": by_state,
        }

    async def __aenter__(self) -> "ConnectionRegistry":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close_all()
