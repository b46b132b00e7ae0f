"""Event types published by the client (one event per classified inbound line)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol


class EventType(Enum):
    """Kinds of events a client publishes."""

    CONNECT = "connect"
    DISCONNECT = "disconnect"
    REGISTERED = "registered"
    MESSAGE = "message"
    ACTION = "action"
    JOIN = "join"
    PART = "part"
    QUIT = "quit"
    NICK_CHANGE = "nick_change"
    KICK = "kick"
    NOTICE = "notice"
    SERVER_NOTICE = "server_notice"
    CHANNEL_MODE = "channel_mode"
    USER_MODE = "user_mode"
    TOPIC = "topic"
    TOPIC_INFO = "topic_info"
    NAMES = "names"
    NICK_IN_USE = "nick_in_use"
    WHOIS_REPLY = "whois_reply"
    JOIN_ERROR = "join_error"
    ERROR = "error"


class ConnectionState(Enum):
    """Connection lifecycle; a new connect() starts again from DISCONNECTED."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    REGISTERED = "registered"
    SHUTTING_DOWN = "shutting_down"


@dataclass(frozen=True)
class ClientEvent:
    """A single client event.

    source: acting nick or server name.
    target: channel or nick the event is scoped to.
    text: payload (message body, reason, new nick, mode string...).
    auxiliary: side data, e.g. comma-joined channels of a quitting user.
    raw: the originating Message or exception, when there is one.
    """

    type: EventType
    source: str | None = None
    target: str | None = None
    text: str | None = None
    auxiliary: str | None = None
    raw: Any = None

    @property
    def channels(self) -> list[str]:
        """Channels carried in auxiliary (QUIT / NICK_CHANGE)."""
        if not self.auxiliary:
            return []
        return [c for c in self.auxiliary.split(",") if c]


class EventListener(Protocol):
    """Anything callable with a ClientEvent."""

    def __call__(self, event: ClientEvent) -> None: ...
