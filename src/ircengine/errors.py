"""Re-export from core.errors."""

from ircengine.core.errors import (
    IRCConfigurationError,
    IRCConnectionError,
    IRCError,
    IRCProtocolError,
    IRCReadError,
)

__all__ = [
    "IRCConfigurationError",
    "IRCConnectionError",
    "IRCError",
    "IRCProtocolError",
    "IRCReadError",
]
