"""Pytest configuration and shared fixtures."""

import asyncio
import json
import os
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from erpsync.realtime import RealtimeConfig, ReconnectPolicy  # noqa: E402


@pytest.fixture(autouse=True)
def reset_settings(monkeypatch):
    """Isolate each test from ERPSYNC_* env vars and the cached settings."""
    from erpsync.settings import get_settings

    for name in list(os.environ):
        if name.startswith("ERPSYNC_"):
            monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ── In-memory channel transport ──────────────────────────────────────

_END = object()


class FakeTransport:
    """Duplex transport fed from a queue; close() ends iteration."""

    def __init__(self):
        self.sent = []
        self.closed = False
        self._frames = asyncio.Queue()

    def feed(self, frame):
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self._frames.put_nowait(frame)

    def drop(self):
        """Simulate the remote side closing the connection."""
        self._frames.put_nowait(_END)

    async def send(self, data):
        self.sent.append(data)

    async def close(self):
        self.closed = True
        self._frames.put_nowait(_END)

    def __aiter__(self):
        return self

    async def __anext__(self):
        frame = await self._frames.get()
        if frame is _END:
            raise StopAsyncIteration
        return frame


class FakeConnector:
    """Connector that hands out FakeTransports, or fails on demand."""

    def __init__(self, failures=0, always_fail=False):
        self.failures = failures
        self.always_fail = always_fail
        self.gate = None
        self.urls = []
        self.transports = []

    async def __call__(self, url):
        self.urls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.always_fail or self.failures > 0:
            self.failures -= 1
            raise ConnectionRefusedError("connection refused")
        transport = FakeTransport()
        self.transports.append(transport)
        return transport

    @property
    def last(self):
        return self.transports[-1]


async def wait_for(predicate, timeout=2.0):
    """Poll until predicate() is truthy; fail the test on timeout."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def fast_config():
    return RealtimeConfig(
        ws_base_url="ws://erp.test/ws",
        reconnect=ReconnectPolicy(interval_seconds=0.01, max_attempts=5),
    )
