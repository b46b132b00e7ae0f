"""Idle detection: PING when quiet, give up when the PING goes unanswered."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

from loguru import logger

from ircengine.protocol.message import format_line


class KeepAliveMonitor:
    """Driven by the caller through check(), typically every 30 seconds."""

    def __init__(
        self,
        send_line: Callable[[str], None],
        on_timeout: Callable[[], None],
        *,
        token: str = "keepalive",
        idle_threshold: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._send_line = send_line
        self._on_timeout = on_timeout
        self._token = token
        self._idle_threshold = idle_threshold
        self._clock = clock
        self._last_activity = clock()
        self._ping_outstanding = False
        self._lock = threading.Lock()

    @property
    def ping_outstanding(self) -> bool:
        with self._lock:
            return self._ping_outstanding

    @property
    def idle_for(self) -> float:
        with self._lock:
            return self._clock() - self._last_activity

    def touch(self) -> None:
        """A line arrived."""
        with self._lock:
            self._last_activity = self._clock()
            self._ping_outstanding = False

    def reset(self) -> None:
        self.touch()

    def check(self) -> None:
        with self._lock:
            outstanding = self._ping_outstanding
            idle = self._clock() - self._last_activity
            should_ping = not outstanding and idle >= self._idle_threshold
            if should_ping:
                self._ping_outstanding = True

        if outstanding:
            logger.warning("Ping timeout after {:.0f}s idle, closing connection", idle)
            self._on_timeout()
        elif should_ping:
            logger.debug("Idle for {:.0f}s, sending PING", idle)
            self._send_line(format_line("PING", self._token))
