"""Event bus: thread-safe listener registry with synchronous fan-out."""

from __future__ import annotations

import threading

from loguru import logger

from ircengine.events import ClientEvent, EventListener

__all__ = ["EventBus", "EventListener"]


class EventBus:
    """Listeners are called inline, in registration order, on the publishing thread."""

    def __init__(self) -> None:
        self._listeners: list[EventListener] = []
        self._lock = threading.Lock()

    def register(self, listener: EventListener) -> None:
        """Register a listener."""
        with self._lock:
            self._listeners.append(listener)

    def unregister(self, listener: EventListener) -> None:
        """Unregister a listener; unknown listeners are ignored."""
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    @property
    def listeners(self) -> list[EventListener]:
        """Snapshot of registered listeners."""
        with self._lock:
            return list(self._listeners)

    def publish(self, event: ClientEvent) -> None:
        """Deliver event to every listener. A failing listener does not stop the others."""
        for listener in self.listeners:
            try:
                listener(event)
            except Exception as exc:
                logger.exception("Listener {} failed on {}: {}", listener, event.type.name, exc)
