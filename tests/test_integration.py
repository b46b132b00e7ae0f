"""End-to-end: IRCClient with the real ConnectionManager against a scripted server socket."""

from __future__ import annotations

import socket
import threading

import pytest

from ircengine.client import IRCClient
from ircengine.events import EventType
from tests.mocks import RecordingListener

TIMEOUT = 2.0


class ScriptedServer:
    """Server end of a socket pair, read line by line."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.sock.settimeout(TIMEOUT)
        self._buffer = b""

    def send(self, *lines: str) -> None:
        self.sock.sendall("".join(f"{line}\r\n" for line in lines).encode())

    def readline(self) -> str:
        while b"\r\n" not in self._buffer:
            data = self.sock.recv(4096)
            if not data:
                raise EOFError("client closed")
            self._buffer += data
        line, self._buffer = self._buffer.split(b"\r\n", 1)
        return line.decode()


class EventWaiter(RecordingListener):
    def __init__(self) -> None:
        super().__init__()
        self._cond = threading.Condition()

    def __call__(self, event) -> None:
        with self._cond:
            super().__call__(event)
            self._cond.notify_all()

    def wait_for(self, event_type: EventType):
        with self._cond:
            assert self._cond.wait_for(lambda: self.of_type(event_type), timeout=TIMEOUT)
            return self.of_type(event_type)[-1]


@pytest.fixture
def session(monkeypatch):
    client_sock, server_sock = socket.socketpair()
    monkeypatch.setattr(socket, "create_connection", lambda *a, **kw: client_sock)
    client = IRCClient("irc.example.net", 6667, nick="me", secure=False, username="ident")
    events = EventWaiter()
    client.add_event_listener(events)
    server = ScriptedServer(server_sock)
    yield client, server, events
    client.disconnect()
    server_sock.close()


class TestSession:
    def test_register_join_ping_quit(self, session):
        # Arrange
        client, server, events = session
        client.join_channel("#test")

        # Act: handshake
        assert client.connect()
        assert server.readline() == "NICK me"
        assert server.readline() == "USER ident 0 * :me"

        # Act: welcome releases the queued JOIN
        server.send(":irc.example.net 001 me :Welcome")
        events.wait_for(EventType.REGISTERED)
        assert server.readline() == "JOIN #test"

        server.send(":me!ident@host JOIN #test", ":irc.example.net 353 me = #test :me @op")
        names = events.wait_for(EventType.NAMES)
        assert names.text == "me op"
        assert client.get_members("#test") == {"me", "op"}

        # Act: keepalive
        server.send("PING :tok")
        assert server.readline() == "PONG tok"

        # Act: quit
        client.disconnect("done")

        # Assert
        assert server.readline() == "QUIT :done"
        assert events.types.count(EventType.DISCONNECT) == 1

    def test_server_hangup_reports_disconnect(self, session):
        client, server, events = session
        assert client.connect()
        server.readline()
        server.readline()

        server.sock.shutdown(socket.SHUT_WR)

        events.wait_for(EventType.DISCONNECT)
        assert not client.is_connected()
        assert EventType.ERROR not in events.types
