"""Test event bus."""

import threading

from ircengine.events import ClientEvent, EventType
from ircengine.gateway.bus import EventBus
from tests.mocks import RecordingListener


def _message(text: str = "Hello") -> ClientEvent:
    return ClientEvent(EventType.MESSAGE, source="alice", target="#test", text=text)


class TestEventBus:
    """Test listener registry and fan-out."""

    def test_register_listener(self):
        bus = EventBus()
        listener = RecordingListener()
        bus.register(listener)
        assert listener in bus.listeners

    def test_unregister_listener(self):
        bus = EventBus()
        listener = RecordingListener()
        bus.register(listener)
        bus.unregister(listener)
        assert listener not in bus.listeners

    def test_unregister_nonexistent_listener_is_safe(self):
        bus = EventBus()
        bus.unregister(RecordingListener())  # never registered, should not raise

    def test_publish_to_listener(self):
        # Arrange
        bus = EventBus()
        listener = RecordingListener()
        bus.register(listener)
        evt = _message()

        # Act
        bus.publish(evt)

        # Assert
        assert listener.events == [evt]

    def test_publish_in_registration_order(self):
        bus = EventBus()
        order = []
        bus.register(lambda e: order.append(1))
        bus.register(lambda e: order.append(2))

        bus.publish(_message())

        assert order == [1, 2]

    def test_publish_handles_listener_exception(self):
        # Arrange
        def failing(evt):
            raise RuntimeError("listener failed")

        bus = EventBus()
        working = RecordingListener()
        bus.register(failing)
        bus.register(working)

        # Act
        bus.publish(_message())

        # Assert
        assert len(working.events) == 1

    def test_listener_may_unregister_itself_during_publish(self):
        # Arrange
        bus = EventBus()
        later = RecordingListener()

        def once(evt):
            bus.unregister(once)

        bus.register(once)
        bus.register(later)

        # Act
        bus.publish(_message("first"))
        bus.publish(_message("second"))

        # Assert
        assert once not in bus.listeners
        assert [e.text for e in later.events] == ["first", "second"]

    def test_listeners_snapshot_is_a_copy(self):
        bus = EventBus()
        bus.listeners.append(RecordingListener())
        assert bus.listeners == []

    def test_concurrent_register_and_publish(self):
        # Arrange
        bus = EventBus()
        received = RecordingListener()
        bus.register(received)
        errors = []

        def publisher():
            try:
                for i in range(200):
                    bus.publish(_message(str(i)))
            except Exception as exc:  # pragma: no cover
                errors.append(exc)

        def registrar():
            for _ in range(200):
                extra = RecordingListener()
                bus.register(extra)
                bus.unregister(extra)

        threads = [threading.Thread(target=publisher), threading.Thread(target=registrar)]

        # Act
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        # Assert
        assert errors == []
        assert len(received.events) == 200


class TestClientEvent:
    def test_channels_from_auxiliary(self):
        evt = ClientEvent(EventType.QUIT, source="bob", auxiliary="#a,#b")
        assert evt.channels == ["#a", "#b"]

    def test_channels_empty(self):
        assert ClientEvent(EventType.QUIT, source="bob").channels == []
        assert ClientEvent(EventType.QUIT, source="bob", auxiliary="").channels == []
