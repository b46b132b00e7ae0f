"""Registration handshake and the queue of commands waiting for RPL_WELCOME."""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable

from loguru import logger

from ircengine.client.identity import Identity
from ircengine.protocol.message import format_line

Thunk = Callable[[], object]


class RegistrationSequencer:
    """Sends PASS/NICK/USER and holds deferred commands until 001 arrives.

    The queue is drained once, FIFO, when registration completes; anything
    submitted after that runs immediately on the caller's thread.
    """

    def __init__(
        self,
        identity: Identity,
        send_line: Callable[[str], None],
        on_registered: Callable[[], None] | None = None,
    ):
        self._identity = identity
        self._send_line = send_line
        self._on_registered = on_registered
        self._pending: deque[Thunk] = deque()
        self._registered = False
        self._lock = threading.Lock()

    @property
    def is_registered(self) -> bool:
        with self._lock:
            return self._registered

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def start(self) -> None:
        """Send the handshake lines."""
        identity = self._identity
        if identity.password:
            self._send_line(format_line("PASS", identity.password))
        self._send_line(format_line("NICK", identity.nick))
        self._send_line(format_line("USER", identity.username, "0", "*", trailing=identity.realname))

    def execute_when_registered(self, thunk: Thunk) -> None:
        with self._lock:
            if not self._registered:
                self._pending.append(thunk)
                return
        thunk()

    def complete(self) -> None:
        """RPL_WELCOME received: flip state and drain the queue."""
        with self._lock:
            if self._registered:
                logger.debug("Duplicate RPL_WELCOME ignored")
                return
            self._registered = True
            pending = list(self._pending)
            self._pending.clear()
            if self._on_registered is not None:
                self._on_registered()

        logger.info("Registered as {}; running {} queued command(s)", self._identity.nick, len(pending))
        for thunk in pending:
            try:
                thunk()
            except Exception as exc:
                logger.exception("Queued command {} failed: {}", thunk, exc)

    def reset(self) -> None:
        """Forget registration and drop queued commands (disconnect)."""
        with self._lock:
            self._registered = False
            self._pending.clear()
