"""Tests for the shared channel session registry."""

import asyncio

import pytest

from conftest import FakeConnector, wait_for
from erpsync.realtime import (
    ChannelKey,
    ConnectionRegistry,
    RealtimeConfig,
    ReconnectPolicy,
    SessionState,
)


class TestConnectionRegistry:
    """Tests for keyed session sharing."""

    @pytest.mark.asyncio
    async def test_get_or_create_returns_same_session(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)

        first = registry.get_or_create("crm", "contacts")
        second = registry.get_or_create(ChannelKey("crm", "contacts"))

        assert first is second
        assert len(registry) == 1
        await wait_for(lambda: first.is_open)
        assert len(connector.urls) == 1
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_int_and_str_ids_share_session(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)
        assert registry.get_or_create("hrms", 7) is registry.get_or_create("hrms", "7")
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_distinct_keys_get_distinct_sessions(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)
        contacts = registry.get_or_create("crm", "contacts")
        deals = registry.get_or_create("crm", "deals")
        assert contacts is not deals
        assert set(registry.keys()) == {ChannelKey("crm", "contacts"), ChannelKey("crm", "deals")}
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_default_id_is_broadcast(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)
        session = registry.get_or_create("global")
        assert session.key == ChannelKey("global", "all")
        assert "global:all" in registry
        await registry.close_all()

    def test_get_does_not_create(self):
        registry = ConnectionRegistry()
        assert registry.get("crm", "contacts") is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_close_disconnects_and_forgets(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)
        session = registry.get_or_create("crm", "contacts")
        await wait_for(lambda: session.is_open)

        assert await registry.close("crm", "contacts") is True
        assert await registry.close("crm", "contacts") is False
        assert "crm:contacts" not in registry
        assert session.state == SessionState.CLOSED
        assert connector.last.closed

    @pytest.mark.asyncio
    async def test_recreate_after_close_is_new_session(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)
        old = registry.get_or_create("crm", "contacts")
        await registry.close(old.key)
        new = registry.get_or_create("crm", "contacts")
        assert new is not old
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_context_manager_closes_all(self, connector, fast_config):
        async with ConnectionRegistry(fast_config, connector=connector) as registry:
            sessions = [registry.get_or_create("crm", name) for name in ("contacts", "deals")]
            await wait_for(lambda: all(s.is_open for s in sessions))

        assert len(registry) == 0
        assert all(s.state == SessionState.CLOSED for s in sessions)
        assert all(t.closed for t in connector.transports)

    @pytest.mark.asyncio
    async def test_unreachable_server_does_not_raise(self):
        connector = FakeConnector(always_fail=True)
        config = RealtimeConfig(reconnect=ReconnectPolicy(max_attempts=0))
        registry = ConnectionRegistry(config, connector=connector)

        session = registry.get_or_create("crm", "contacts")
        await asyncio.sleep(0.02)

        assert session.state == SessionState.IDLE
        assert registry.get("crm", "contacts") is session
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_stats(self, connector, fast_config):
        registry = ConnectionRegistry(fast_config, connector=connector)
        session = registry.get_or_create("crm", "contacts")
        await wait_for(lambda: session.is_open)

        stats = registry.get_stats()
        assert stats["total_sessions"] == 1
        assert stats["by_state"]["open"] == 1
        await registry.close_all()
