"""IRC client engine components."""

from ircengine.client.client import IRCClient

__all__ = ["IRCClient"]
