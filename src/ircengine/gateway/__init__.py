"""Gateway: event bus."""

from ircengine.gateway.bus import EventBus

__all__ = ["EventBus"]
