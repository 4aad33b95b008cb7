import asyncio

import pytest

from broadcast import Broadcaster
from registry import RoomRegistry
from signaling import SignalingRelay


class FakeConnection:
    """In-memory stand-in for a WebSocket connection that records what it is sent."""

    def __init__(self, connection_id, open=True, fail_with=None, delay=0):
        self.id = connection_id
        self.open = open
        self.fail_with = fail_with
        self.delay = delay
        self.sent = []

    @property
    def is_open(self):
        return self.open

    async def send(self, text):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(text)


@pytest.fixture
def make_connection():
    return FakeConnection


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def broadcaster(registry):
    return Broadcaster(registry)


@pytest.fixture
def relay(registry, broadcaster):
    return SignalingRelay(registry, broadcaster)
