"""IRCClient: public surface of the engine.

One instance owns one connection at a time. Everything inbound runs on the
connection's reader thread; public send methods may be called from any
thread and are serialized by the connection's write lock.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from loguru import logger

from ircengine.client.channels import ChannelStateTracker
from ircengine.client.connection import ConnectionManager
from ircengine.client.dispatcher import CommandDispatcher
from ircengine.client.identity import Identity, NickCollisionResolver
from ircengine.client.keepalive import KeepAliveMonitor
from ircengine.client.registration import RegistrationSequencer, Thunk
from ircengine.core.constants import DEFAULT_PLAIN_PORT, DEFAULT_TLS_PORT
from ircengine.core.errors import IRCConnectionError, IRCError, IRCProtocolError, IRCReadError
from ircengine.events import ClientEvent, ConnectionState, EventListener, EventType
from ircengine.gateway.bus import EventBus
from ircengine.protocol.ctcp import wrap_ctcp
from ircengine.protocol.message import Message, format_line, parse_line

if TYPE_CHECKING:
    from ircengine.config import Config

ConnectionFactory = Callable[..., ConnectionManager]


class IRCClient:
    """Threaded IRC client publishing ClientEvents to registered listeners."""

    def __init__(
        self,
        host: str,
        port: int | None = None,
        *,
        nick: str,
        secure: bool = True,
        username: str = "ircengine",
        realname: str | None = None,
        password: str | None = None,
        tls_verify: bool = True,
        connect_timeout: float = 30.0,
        read_timeout: float | None = 120.0,
        ping_timeout: float = 60.0,
        nick_suffix: str = "_",
        max_nick_attempts: int | None = 10,
        ctcp_version: str = "ircengine",
        quit_message: str = "Disconnecting",
        connection_factory: ConnectionFactory = ConnectionManager,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._host = host
        self._port = port or (DEFAULT_TLS_PORT if secure else DEFAULT_PLAIN_PORT)
        self._secure = secure
        self._tls_verify = tls_verify
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._quit_message = quit_message
        self._connection_factory = connection_factory

        self._state = ConnectionState.DISCONNECTED
        self._lifecycle_lock = threading.Lock()
        self._connection: ConnectionManager | None = None

        self._bus = EventBus()
        self._identity = Identity(nick, username, realname, password)
        self._channels = ChannelStateTracker()
        self._registration = RegistrationSequencer(self._identity, self._write, self._mark_registered)
        self._nick_resolver = NickCollisionResolver(
            self._identity,
            self._write,
            suffix=nick_suffix,
            max_attempts=max_nick_attempts,
        )
        self._keepalive = KeepAliveMonitor(
            self._write,
            self._on_ping_timeout,
            token=host,
            idle_threshold=ping_timeout,
            clock=clock,
        )
        self._dispatcher = CommandDispatcher(
            self._identity,
            self._channels,
            self._registration,
            self._nick_resolver,
            self._write,
            ctcp_version=ctcp_version,
        )

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> IRCClient:
        """Build a client from a Config accessor; kwargs override."""
        options = {
            "port": config.port,
            "nick": config.nick,
            "secure": config.tls,
            "username": config.username,
            "realname": config.realname,
            "password": config.password,
            "tls_verify": config.tls_verify,
            "connect_timeout": config.connect_timeout,
            "read_timeout": config.read_timeout,
            "ping_timeout": config.ping_timeout,
            "nick_suffix": config.nick_suffix,
            "max_nick_attempts": config.max_nick_attempts,
            "ctcp_version": config.ctcp_version,
            "quit_message": config.quit_message,
        }
        options.update(kwargs)
        return cls(config.server, **options)

    # -- introspection -----------------------------------------------------

    @property
    def host(self) -> str:
        return self._host

    @property
    def port(self) -> int:
        return self._port

    @property
    def secure(self) -> bool:
        return self._secure

    @property
    def state(self) -> ConnectionState:
        with self._lifecycle_lock:
            return self._state

    def is_connected(self) -> bool:
        """Liveness check for caller-driven reconnect policies."""
        with self._lifecycle_lock:
            conn = self._connection
            live = self._state in (ConnectionState.CONNECTED, ConnectionState.REGISTERED)
        return live and conn is not None and conn.is_open

    def get_nick(self) -> str:
        return self._identity.nick

    def get_channels(self) -> set[str]:
        return self._channels.channels()

    def get_members(self, channel: str) -> set[str]:
        return self._channels.members(channel)

    # -- listeners ---------------------------------------------------------

    def add_event_listener(self, listener: EventListener) -> None:
        self._bus.register(listener)

    def remove_event_listener(self, listener: EventListener) -> None:
        self._bus.unregister(listener)

    def _publish(self, event: ClientEvent) -> None:
        self._bus.publish(event)

    def _publish_error(self, error: IRCError) -> None:
        self._publish(ClientEvent(EventType.ERROR, text=str(error), auxiliary=error.code, raw=error))

    # -- lifecycle ---------------------------------------------------------

    def connect(self) -> bool:
        """Open the socket, send the handshake and start reading.

        Returns False (after publishing ERROR) if the attempt failed; there is
        no retry. Only call again once the previous connection reached
        DISCONNECTED.
        """
        with self._lifecycle_lock:
            if self._state is not ConnectionState.DISCONNECTED:
                logger.warning("connect() ignored while {}", self._state.value)
                return False
            self._state = ConnectionState.CONNECTING

        conn = self._connection_factory(
            self._handle_line,
            self._on_connection_closed,
            connect_timeout=self._connect_timeout,
            read_timeout=self._read_timeout,
            tls_verify=self._tls_verify,
        )
        logger.info("Connecting to {}:{}", self._host, self._port)
        try:
            conn.open(self._host, self._port, self._secure)
        except IRCConnectionError as exc:
            logger.error("Connection to {}:{} failed: {}", self._host, self._port, exc)
            with self._lifecycle_lock:
                self._state = ConnectionState.DISCONNECTED
            self._publish_error(exc)
            return False

        with self._lifecycle_lock:
            self._connection = conn
            self._state = ConnectionState.CONNECTED
        self._keepalive.reset()
        self._nick_resolver.reset()

        try:
            self._registration.start()
        except IRCError as exc:
            logger.error("Registration handshake failed: {}", exc)
            conn.close()
            with self._lifecycle_lock:
                self._connection = None
                self._state = ConnectionState.DISCONNECTED
            self._publish_error(exc)
            return False

        self._publish(ClientEvent(EventType.CONNECT, source=self._host, target=f"{self._host}:{self._port}"))

        # A CONNECT listener may already have disconnected us
        with self._lifecycle_lock:
            still_ours = self._connection is conn and self._state is ConnectionState.CONNECTED
        if not still_ours:
            logger.debug("Connection closed during CONNECT; reader not started")
            return False
        try:
            conn.start_reader()
        except IRCConnectionError as exc:
            logger.debug("Reader not started: {}", exc)
            return False
        return True

    def disconnect(self, reason: str = "") -> None:
        """Send QUIT (best effort), close the socket and publish DISCONNECT once."""
        with self._lifecycle_lock:
            if self._state in (ConnectionState.DISCONNECTED, ConnectionState.SHUTTING_DOWN):
                logger.debug("disconnect() ignored while {}", self._state.value)
                return
            self._state = ConnectionState.SHUTTING_DOWN
            conn = self._connection

        reason = reason or self._quit_message
        logger.info("Disconnecting: {}", reason)
        if conn is not None:
            conn.close(final_line=format_line("QUIT", trailing=reason))
        self._finish_disconnect()

    def _abort(self, error: IRCReadError | None) -> None:
        """Unplanned end of the connection: ERROR (if any) then DISCONNECT."""
        with self._lifecycle_lock:
            if self._state in (ConnectionState.DISCONNECTED, ConnectionState.SHUTTING_DOWN):
                return
            self._state = ConnectionState.SHUTTING_DOWN
            conn = self._connection

        if error is not None:
            logger.error("Connection lost: {}", error)
            self._publish_error(error)
        if conn is not None:
            conn.close()
        self._finish_disconnect()

    def _finish_disconnect(self) -> None:
        self._channels.clear()
        self._registration.reset()
        self._nick_resolver.reset()
        with self._lifecycle_lock:
            self._connection = None
            self._state = ConnectionState.DISCONNECTED
        self._publish(ClientEvent(EventType.DISCONNECT, source=self._host))

    def _on_connection_closed(self, error: BaseException | None) -> None:
        if error is None:
            self._abort(None)
            return
        self._abort(IRCReadError(f"Read failed: {error}", code="read_failed", original_error=error))

    def _on_ping_timeout(self) -> None:
        self._abort(IRCReadError("Ping timeout", code="ping_timeout"))

    def _mark_registered(self) -> None:
        with self._lifecycle_lock:
            if self._state is ConnectionState.CONNECTED:
                self._state = ConnectionState.REGISTERED

    # -- inbound -----------------------------------------------------------

    def _handle_line(self, line: str) -> None:
        message = parse_line(line)
        if message is None:
            logger.debug("Dropping unparseable line: {!r}", line)
            return
        self._keepalive.touch()

        try:
            if message.command == "PING":
                self._write(Message(None, "PONG", message.params[:1]).to_line())
                return
            event = self._dispatcher.dispatch(message)
        except IRCConnectionError as exc:
            logger.warning("Reply to {} not sent: {}", message.command, exc)
            return
        except Exception as exc:
            logger.exception("Failed to handle {!r}: {}", line, exc)
            return

        if event is not None:
            self._publish(event)

    def ping_check(self) -> None:
        """Keepalive tick; call periodically (e.g. every 30 seconds)."""
        if not self.is_connected():
            return
        try:
            self._keepalive.check()
        except IRCConnectionError as exc:
            self._abort(IRCReadError("Ping failed", code="ping_failed", original_error=exc))

    # -- outbound ----------------------------------------------------------

    def _write(self, line: str) -> None:
        conn = self._connection
        if conn is None or not conn.is_open:
            logger.warning("Not connected; dropping {}", line)
            return
        conn.send_line(line)

    def send_raw_line(self, line: str) -> None:
        """Send a line as-is. Raises IRCConnectionError if the write fails."""
        if any(ch in line for ch in "\r\n\0"):
            raise IRCProtocolError("IRC line may not contain CR, LF or NUL", code="invalid_line")
        self._write(line)

    def execute_when_registered(self, thunk: Thunk) -> None:
        """Run thunk now if registered, otherwise right after RPL_WELCOME."""
        self._registration.execute_when_registered(thunk)

    def join_channel(self, channel: str, password: str | None = None) -> None:
        params = [channel, password] if password else [channel]
        self.execute_when_registered(lambda: self._write(format_line("JOIN", *params)))

    def leave_channel(self, channel: str, reason: str | None = None) -> None:
        if not self._channels.is_joined(channel):
            logger.debug("Not in {}; PART not sent", channel)
            return
        self._write(format_line("PART", channel, trailing=reason or None))

    def send_message(self, target: str, text: str) -> None:
        self._write(format_line("PRIVMSG", target, trailing=text))

    def send_action(self, target: str, text: str) -> None:
        self._write(format_line("PRIVMSG", target, trailing=wrap_ctcp("ACTION", text)))

    def send_notice(self, target: str, text: str) -> None:
        self._write(format_line("NOTICE", target, trailing=text))

    def set_nick(self, nick: str) -> None:
        """Request a nick change.

        Before registration the server does not echo NICK, so the identity is
        updated right away; afterwards it follows the server's NICK echo.
        """
        line = format_line("NICK", nick)
        if not self.is_connected():
            self._identity.nick = nick
            return
        self._write(line)
        if not self._registration.is_registered:
            self._identity.nick = nick

    def reset_nick(self) -> None:
        """Forget nick changes made during the session (takes effect on next connect)."""
        self._identity.reset()

    def whois(self, nick: str) -> None:
        self._write(format_line("WHOIS", nick))

    def names(self, channel: str) -> None:
        self._write(format_line("NAMES", channel))

    def topic(self, channel: str, text: str | None = None) -> None:
        """Query the topic, or set it when text is given."""
        self._write(format_line("TOPIC", channel, trailing=text))

    def mode(self, target: str, modes: str = "") -> None:
        self._write(format_line("MODE", target, *modes.split()))

    def away(self, message: str | None = None) -> None:
        """Mark away with message, or back when message is empty."""
        self._write(format_line("AWAY", trailing=message) if message else "AWAY")

    def nickserv(self, text: str) -> None:
        self.send_message("NickServ", text)

    def chanserv(self, text: str) -> None:
        self.send_message("ChanServ", text)

    def botserv(self, text: str) -> None:
        self.send_message("BotServ", text)

    def hostserv(self, text: str) -> None:
        self.send_message("HostServ", text)

    def memoserv(self, text: str) -> None:
        self.send_message("MemoServ", text)

    def identify(self, password: str) -> None:
        self.nickserv(f"IDENTIFY {password}")
