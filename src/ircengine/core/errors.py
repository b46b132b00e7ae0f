"""IRC engine domain exceptions."""

from __future__ import annotations


class IRCError(Exception):
    """Base for engine errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: dict[str, object] | None = None,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}
        self.original_error = original_error


class IRCConfigurationError(IRCError):
    """Config validation or load failure."""


class IRCConnectionError(IRCError):
    """Socket/TLS setup failed, or a write on the live socket failed."""


class IRCReadError(IRCError):
    """Read loop ended unexpectedly (I/O failure or ping timeout)."""


class IRCProtocolError(IRCError):
    """A line could not be built or does not follow the IRC grammar."""
