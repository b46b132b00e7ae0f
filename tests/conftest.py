"""Shared fixtures: a client wired to fake connections."""

from __future__ import annotations

import pytest

from ircengine.client import IRCClient
from tests.mocks import FakeClock, FakeConnectionFactory, RecordingListener


@pytest.fixture
def factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def client(factory, clock, listener) -> IRCClient:
    client = IRCClient(
        "irc.example.net",
        6667,
        nick="me",
        secure=False,
        username="ident",
        realname="Real Name",
        connection_factory=factory,
        clock=clock,
    )
    client.add_event_listener(listener)
    return client


@pytest.fixture
def connected(client, factory, listener):
    """Client past connect(), handshake lines cleared."""
    assert client.connect()
    factory.last.clear()
    listener.clear()
    return client


@pytest.fixture
def registered(connected, factory, listener):
    """Client past RPL_WELCOME."""
    factory.last.feed(":irc.example.net 001 me :Welcome to the network")
    factory.last.clear()
    listener.clear()
    return connected
