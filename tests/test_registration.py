"""Test RegistrationSequencer and NickCollisionResolver in isolation."""

import pytest

from ircengine.client.identity import Identity, NickCollisionResolver, nick_equals
from ircengine.client.registration import RegistrationSequencer
from ircengine.events import EventType


class TestHandshake:
    def test_nick_and_user(self):
        sent = []
        seq = RegistrationSequencer(Identity("me", "ident", "Real Name"), sent.append)

        seq.start()

        assert sent == ["NICK me", "USER ident 0 * :Real Name"]

    def test_pass_first(self):
        sent = []
        seq = RegistrationSequencer(Identity("me", "ident", password="pw"), sent.append)

        seq.start()

        assert sent == ["PASS pw", "NICK me", "USER ident 0 * :me"]


class TestRegistrationQueue:
    def test_queue_until_complete(self):
        # Arrange
        ran = []
        seq = RegistrationSequencer(Identity("me", "ident"), lambda line: None)
        seq.execute_when_registered(lambda: ran.append("a"))
        seq.execute_when_registered(lambda: ran.append("b"))

        # Act & Assert
        assert ran == []
        assert seq.pending_count == 2
        seq.complete()
        assert ran == ["a", "b"]
        assert seq.pending_count == 0
        assert seq.is_registered

    def test_on_registered_called_before_thunks(self):
        order = []
        seq = RegistrationSequencer(Identity("me", "ident"), lambda line: None, lambda: order.append("state"))
        seq.execute_when_registered(lambda: order.append("thunk"))

        seq.complete()

        assert order == ["state", "thunk"]

    def test_immediate_after_complete(self):
        ran = []
        seq = RegistrationSequencer(Identity("me", "ident"), lambda line: None)
        seq.complete()

        seq.execute_when_registered(lambda: ran.append(1))

        assert ran == [1]

    def test_thunk_queued_from_a_thunk_runs_immediately(self):
        ran = []
        seq = RegistrationSequencer(Identity("me", "ident"), lambda line: None)
        seq.execute_when_registered(lambda: seq.execute_when_registered(lambda: ran.append("inner")))

        seq.complete()

        assert ran == ["inner"]

    def test_reset_drops_queue(self):
        ran = []
        seq = RegistrationSequencer(Identity("me", "ident"), lambda line: None)
        seq.execute_when_registered(lambda: ran.append(1))

        seq.reset()
        seq.complete()

        assert ran == []


class TestNickCollisionResolver:
    def test_resolve_sends_alternate(self):
        # Arrange
        sent = []
        identity = Identity("Foo", "ident")
        resolver = NickCollisionResolver(identity, sent.append)

        # Act
        evt = resolver.resolve("Foo")

        # Assert
        assert sent == ["NICK Foo_"]
        assert evt.type is EventType.NICK_IN_USE
        assert (evt.text, evt.auxiliary) == ("Foo", "Foo_")
        assert identity.nick == "Foo_"
        assert resolver.attempts == 1

    def test_custom_suffix(self):
        sent = []
        resolver = NickCollisionResolver(Identity("Foo", "ident"), sent.append, suffix="|")
        resolver.resolve("Foo")
        assert sent == ["NICK Foo|"]

    def test_unlimited_attempts(self):
        sent = []
        resolver = NickCollisionResolver(Identity("a", "ident"), sent.append, max_attempts=None)
        nick = "a"
        for _ in range(20):
            nick = resolver.resolve(nick).auxiliary
        assert len(sent) == 20

    def test_zero_attempts_never_retries(self):
        sent = []
        resolver = NickCollisionResolver(Identity("a", "ident"), sent.append, max_attempts=0)
        evt = resolver.resolve("a")
        assert sent == []
        assert evt.auxiliary is None


class TestIdentity:
    @pytest.mark.parametrize(("a", "b", "expected"), [("Me", "me", True), ("me", "you", False), (None, "me", False)])
    def test_nick_equals(self, a, b, expected):
        assert nick_equals(a, b) is expected

    def test_reset_restores_configured_nick(self):
        identity = Identity("me", "ident")
        identity.nick = "other"
        identity.reset()
        assert identity.nick == "me"
