"""Own identity (nick, user, realname, password) and nick-collision recovery."""

from __future__ import annotations

import threading
from collections.abc import Callable

from loguru import logger

from ircengine.events import ClientEvent, EventType
from ircengine.protocol.message import format_line


def nick_equals(a: str | None, b: str | None) -> bool:
    """Case-insensitive nick comparison."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


class Identity:
    """Who we are on the server. Only the nick changes during a session."""

    def __init__(self, nick: str, username: str, realname: str | None = None, password: str | None = None):
        self._initial_nick = nick
        self._nick = nick
        self._lock = threading.Lock()
        self.username = username
        self.realname = realname or nick
        self.password = password or None

    @property
    def nick(self) -> str:
        with self._lock:
            return self._nick

    @nick.setter
    def nick(self, value: str) -> None:
        with self._lock:
            self._nick = value

    def is_self(self, nick: str | None) -> bool:
        return nick_equals(nick, self.nick)

    def reset(self) -> None:
        """Return to the configured nick."""
        self.nick = self._initial_nick


class NickCollisionResolver:
    """Answers ERR_NICKNAMEINUSE by retrying with a suffixed nick."""

    def __init__(
        self,
        identity: Identity,
        send_line: Callable[[str], None],
        *,
        suffix: str = "_",
        max_attempts: int | None = 10,
    ):
        self._identity = identity
        self._send_line = send_line
        self._suffix = suffix
        self._max_attempts = max_attempts
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    def alternate(self, rejected: str) -> str:
        return rejected + self._suffix

    def reset(self) -> None:
        self._attempts = 0

    def resolve(self, rejected: str) -> ClientEvent:
        """Retry with an alternate nick. auxiliary carries the new nick, or None once we give up."""
        if self._max_attempts is not None and self._attempts >= self._max_attempts:
            logger.error("Nick {} in use; giving up after {} attempts", rejected, self._attempts)
            return ClientEvent(EventType.NICK_IN_USE, text=rejected)

        self._attempts += 1
        alternate = self.alternate(rejected)
        logger.warning("Nick {} in use, trying {}", rejected, alternate)
        self._send_line(format_line("NICK", alternate))
        self._identity.nick = alternate
        return ClientEvent(EventType.NICK_IN_USE, text=rejected, auxiliary=alternate)
