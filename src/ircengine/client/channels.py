"""Joined channels and their member nicks.

Written only by the dispatcher on the read thread; readers on other threads
get copies. The membership dict is keyed by joined channels, so dropping a
channel drops its members in the same step.
"""

from __future__ import annotations

import threading

from ircengine.client.identity import nick_equals
from ircengine.core.constants import MEMBER_PREFIXES


def strip_member_prefix(name: str) -> str:
    """``@bob`` -> ``bob`` (also handles multi-prefix ``@+bob``)."""
    return name.lstrip(MEMBER_PREFIXES)


def _spellings(nicks: set[str], nick: str) -> list[str]:
    """Stored spellings of nick in nicks, compared case-insensitively."""
    return [n for n in nicks if nick_equals(n, nick)]


class ChannelStateTracker:
    """Joined-channel set and per-channel membership."""

    def __init__(self) -> None:
        # insertion order = join order
        self._members: dict[str, set[str]] = {}
        self._lock = threading.RLock()

    # -- readers ---------------------------------------------------------

    def channels(self) -> set[str]:
        with self._lock:
            return set(self._members)

    def members(self, channel: str) -> set[str]:
        """Members of channel; empty if not joined."""
        with self._lock:
            return set(self._members.get(channel, ()))

    def is_joined(self, channel: str) -> bool:
        with self._lock:
            return channel in self._members

    def channels_of(self, nick: str) -> list[str]:
        """Joined channels nick is a member of, in join order."""
        with self._lock:
            return [channel for channel, nicks in self._members.items() if _spellings(nicks, nick)]

    # -- mutators (dispatcher only) ----------------------------------------

    def joined(self, channel: str, self_nick: str) -> None:
        """We joined channel."""
        with self._lock:
            self._members.setdefault(channel, set()).add(self_nick)

    def left(self, channel: str) -> None:
        """We left channel (part, kick); drop it with its members."""
        with self._lock:
            self._members.pop(channel, None)

    def add_member(self, channel: str, nick: str) -> bool:
        """Record nick in channel. Ignored for channels we are not in."""
        with self._lock:
            nicks = self._members.get(channel)
            if nicks is None:
                return False
            nicks.add(nick)
            return True

    def remove_member(self, channel: str, nick: str) -> None:
        with self._lock:
            nicks = self._members.get(channel)
            if nicks is not None:
                nicks.difference_update(_spellings(nicks, nick))

    def remove_user(self, nick: str) -> list[str]:
        """Remove nick everywhere; returns the channels it was in."""
        with self._lock:
            found = self.channels_of(nick)
            for channel in found:
                nicks = self._members[channel]
                nicks.difference_update(_spellings(nicks, nick))
            return found

    def rename_user(self, old: str, new: str) -> list[str]:
        """Replace old with new in every channel; returns the affected channels."""
        with self._lock:
            found = self.channels_of(old)
            for channel in found:
                nicks = self._members[channel]
                nicks.difference_update(_spellings(nicks, old))
                nicks.add(new)
            return found

    def merge_names(self, channel: str, names: list[str]) -> bool:
        """Merge a NAMES reply into a joined channel. Returns False if not joined."""
        with self._lock:
            nicks = self._members.get(channel)
            if nicks is None:
                return False
            nicks.update(n for n in (strip_member_prefix(name) for name in names) if n)
            return True

    def clear(self) -> None:
        with self._lock:
            self._members.clear()
