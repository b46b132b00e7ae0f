"""Socket ownership: connect (plain or TLS), background read loop, serialized writes."""

from __future__ import annotations

import contextlib
import socket
import ssl
import threading
from collections.abc import Callable, Iterator

from loguru import logger

from ircengine.core.errors import IRCConnectionError

_RECV_SIZE = 4096

LineCallback = Callable[[str], None]
ClosedCallback = Callable[[BaseException | None], None]


class ConnectionManager:
    """One TCP (optionally TLS) connection and its reader thread.

    on_line is called on the reader thread for each received line.
    on_closed is called once if the stream ends without close() being
    called: with None on EOF, or the exception that broke the loop.
    """

    def __init__(
        self,
        on_line: LineCallback,
        on_closed: ClosedCallback,
        *,
        connect_timeout: float = 30.0,
        read_timeout: float | None = 120.0,
        tls_verify: bool = True,
        encoding: str = "utf-8",
    ):
        self._on_line = on_line
        self._on_closed = on_closed
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._tls_verify = tls_verify
        self._encoding = encoding
        self._sock: socket.socket | None = None
        self._reader: threading.Thread | None = None
        self._write_lock = threading.Lock()
        self._closing = threading.Event()

    @property
    def is_open(self) -> bool:
        return self._sock is not None and not self._closing.is_set()

    @property
    def closing(self) -> bool:
        return self._closing.is_set()

    @property
    def reader(self) -> threading.Thread | None:
        return self._reader

    def _tls_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self._tls_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def open(self, host: str, port: int, secure: bool) -> None:
        """Connect; raises IRCConnectionError on DNS, TCP or TLS failure."""
        details = {"host": host, "port": port, "secure": secure}
        try:
            sock = socket.create_connection((host, port), timeout=self._connect_timeout)
        except socket.gaierror as exc:
            raise IRCConnectionError(
                f"Could not resolve {host}: {exc}", code="resolve_failed", details=details, original_error=exc
            ) from exc
        except OSError as exc:
            raise IRCConnectionError(
                f"Could not connect to {host}:{port}: {exc}",
                code="connect_failed",
                details=details,
                original_error=exc,
            ) from exc

        if secure:
            try:
                sock = self._tls_context().wrap_socket(sock, server_hostname=host)
            except (ssl.SSLError, ssl.CertificateError, OSError) as exc:
                with contextlib.suppress(OSError):
                    sock.close()
                raise IRCConnectionError(
                    f"TLS handshake with {host}:{port} failed: {exc}",
                    code="tls_failed",
                    details=details,
                    original_error=exc,
                ) from exc

        sock.settimeout(self._read_timeout)
        self._sock = sock
        logger.info("Connected to {}:{}{}", host, port, " (TLS)" if secure else "")

    def start_reader(self) -> threading.Thread:
        """Start the read thread. Only one per connection."""
        if self._sock is None:
            raise IRCConnectionError("Cannot read before open()", code="not_connected")
        if self._reader is not None:
            raise IRCConnectionError("Reader already started", code="reader_running")
        self._reader = threading.Thread(target=self._read_loop, name="irc-reader", daemon=True)
        self._reader.start()
        return self._reader

    def _read_lines(self) -> Iterator[str]:
        buffer = b""
        while not self._closing.is_set():
            sock = self._sock
            if sock is None:
                return
            try:
                data = sock.recv(_RECV_SIZE)
            except TimeoutError:
                # An idle socket is not a dead one; KeepAliveMonitor decides that.
                continue
            if not data:
                return
            buffer += data
            *lines, buffer = buffer.split(b"\n")
            for raw in lines:
                line = raw.rstrip(b"\r").decode(self._encoding, errors="replace")
                if line:
                    yield line

    def _read_loop(self) -> None:
        error: BaseException | None = None
        try:
            for line in self._read_lines():
                logger.debug("<- {}", line)
                self._on_line(line)
                if self._closing.is_set():
                    break
        except OSError as exc:
            if not self._closing.is_set():
                error = exc
                logger.warning("Read failed: {}", exc)
        finally:
            if not self._closing.is_set():
                if error is None:
                    logger.info("Server closed the connection")
                self._on_closed(error)

    def send_line(self, line: str) -> None:
        """Write one line plus CRLF. Raises IRCConnectionError if the write fails."""
        data = f"{line}\r\n".encode(self._encoding)
        with self._write_lock:
            sock = self._sock
            if sock is None:
                raise IRCConnectionError("Not connected", code="not_connected")
            try:
                sock.sendall(data)
            except OSError as exc:
                raise IRCConnectionError(
                    f"Write failed: {exc}", code="write_failed", original_error=exc
                ) from exc
        logger.debug("-> {}", line)

    def close(self, final_line: str | None = None) -> None:
        """Planned shutdown: best-effort final line, then writer, reader, socket."""
        self._closing.set()
        if final_line is not None:
            try:
                self.send_line(final_line)
            except IRCConnectionError as exc:
                logger.debug("Final line not sent: {}", exc)

        with self._write_lock:
            sock, self._sock = self._sock, None
        if sock is None:
            return
        for how in (socket.SHUT_WR, socket.SHUT_RD):
            with contextlib.suppress(OSError):
                sock.shutdown(how)
        with contextlib.suppress(OSError):
            sock.close()

        reader = self._reader
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)
