"""ircengine: threaded IRC client engine with typed events."""

__version__ = "0.1.0"

from ircengine.client import IRCClient  # noqa: E402
from ircengine.events import ClientEvent, ConnectionState, EventType  # noqa: E402

__all__ = ["ClientEvent", "ConnectionState", "EventType", "IRCClient", "__version__"]
