"""Classify parsed messages into client events and keep channel state current."""

from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from ircengine.client.channels import ChannelStateTracker, strip_member_prefix
from ircengine.client.identity import Identity, NickCollisionResolver
from ircengine.client.registration import RegistrationSequencer
from ircengine.core import constants as c
from ircengine.events import ClientEvent, EventType
from ircengine.protocol.ctcp import is_ctcp, parse_ctcp, wrap_ctcp
from ircengine.protocol.message import Message, format_line

Handler = Callable[[Message], ClientEvent | None]


class CommandDispatcher:
    """Maps a Message to at most one ClientEvent.

    Named commands and numerics are looked up in two tables built once in
    __init__; anything not in them yields no event.
    """

    def __init__(
        self,
        identity: Identity,
        channels: ChannelStateTracker,
        registration: RegistrationSequencer,
        nick_resolver: NickCollisionResolver,
        send_line: Callable[[str], None],
        *,
        ctcp_version: str = "ircengine",
    ):
        self._identity = identity
        self._channels = channels
        self._registration = registration
        self._nick_resolver = nick_resolver
        self._send_line = send_line
        self._ctcp_version = ctcp_version

        self._commands: dict[str, Handler] = {
            "PRIVMSG": self._on_privmsg,
            "JOIN": self._on_join,
            "PART": self._on_part,
            "QUIT": self._on_quit,
            "NICK": self._on_nick,
            "KICK": self._on_kick,
            "NOTICE": self._on_notice,
            "MODE": self._on_mode,
            "TOPIC": self._on_topic,
            "ERROR": self._on_error,
        }
        self._numerics: dict[str, Handler] = {
            c.RPL_WELCOME: self._on_welcome,
            c.RPL_UMODEIS: self._on_umodeis,
            c.RPL_CHANNELMODEIS: self._on_channelmodeis,
            c.RPL_TOPIC: self._on_rpl_topic,
            c.RPL_TOPICWHOTIME: self._on_topicwhotime,
            c.RPL_NAMREPLY: self._on_namreply,
            c.ERR_NICKNAMEINUSE: self._on_nicknameinuse,
            **{code: self._on_whois for code in c.WHOIS_NUMERICS},
            **{code: self._on_join_error for code in c.JOIN_ERROR_NUMERICS},
        }

    def dispatch(self, message: Message) -> ClientEvent | None:
        table = self._numerics if message.is_numeric else self._commands
        handler = table.get(message.command)
        if handler is None:
            return None
        return handler(message)

    # -- chat --------------------------------------------------------------

    def _reply_target(self, target: str, sender: str) -> str:
        """Channel messages stay in the channel; private ones are routed to the sender."""
        return target if c.is_channel(target) else sender

    def _on_privmsg(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        target, text = msg.params[0], msg.params[1]
        if is_ctcp(text):
            return self._on_ctcp(msg, target, text)
        return ClientEvent(
            EventType.MESSAGE,
            source=msg.nick,
            target=self._reply_target(target, msg.nick),
            text=text,
            raw=msg,
        )

    def _on_ctcp(self, msg: Message, target: str, text: str) -> ClientEvent | None:
        command, argument = parse_ctcp(text)
        sender = msg.nick
        if command == "ACTION":
            return ClientEvent(
                EventType.ACTION,
                source=sender,
                target=self._reply_target(target, sender),
                text=argument,
                raw=msg,
            )
        if command == "VERSION":
            self._send_line(format_line("NOTICE", sender, trailing=wrap_ctcp("VERSION", self._ctcp_version)))
        elif command == "PING":
            self._send_line(format_line("NOTICE", sender, trailing=wrap_ctcp("PING", argument)))
        else:
            logger.debug("Ignoring CTCP {} from {}", command, sender)
        return None

    def _on_notice(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        target, text = msg.params[0], msg.params[1]
        if msg.source and "!" in msg.source:
            return ClientEvent(EventType.NOTICE, source=msg.nick, target=target, text=text, raw=msg)
        return ClientEvent(EventType.SERVER_NOTICE, source=msg.source or "", text=text, raw=msg)

    # -- membership --------------------------------------------------------

    def _on_join(self, msg: Message) -> ClientEvent | None:
        if not msg.params:
            return None
        channel, nick = msg.params[0], msg.nick
        if self._identity.is_self(nick):
            logger.info("Joined {}", channel)
            self._channels.joined(channel, nick)
        else:
            self._channels.add_member(channel, nick)
        return ClientEvent(EventType.JOIN, source=nick, target=channel, raw=msg)

    def _on_part(self, msg: Message) -> ClientEvent | None:
        if not msg.params:
            return None
        channel, nick = msg.params[0], msg.nick
        if self._identity.is_self(nick):
            logger.info("Left {}", channel)
            self._channels.left(channel)
            return None
        self._channels.remove_member(channel, nick)
        return ClientEvent(EventType.PART, source=nick, target=channel, text=msg.param(1), raw=msg)

    def _on_quit(self, msg: Message) -> ClientEvent:
        nick = msg.nick
        found = self._channels.remove_user(nick)
        if self._identity.is_self(nick):
            self._channels.clear()
        return ClientEvent(
            EventType.QUIT,
            source=nick,
            text=msg.param(0),
            auxiliary=",".join(found),
            raw=msg,
        )

    def _on_nick(self, msg: Message) -> ClientEvent | None:
        if not msg.params:
            return None
        old, new = msg.nick, msg.params[0]
        if self._identity.is_self(old):
            logger.info("Now known as {}", new)
            self._identity.nick = new
        found = self._channels.rename_user(old, new)
        return ClientEvent(
            EventType.NICK_CHANGE,
            source=old,
            text=new,
            auxiliary=",".join(found),
            raw=msg,
        )

    def _on_kick(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        channel, kicked, reason = msg.params[0], msg.params[1], msg.param(2)
        if self._identity.is_self(kicked):
            logger.warning("Kicked from {} by {}: {}", channel, msg.nick, reason)
            self._channels.left(channel)
        else:
            self._channels.remove_member(channel, kicked)
        return ClientEvent(
            EventType.KICK,
            source=msg.nick,
            target=channel,
            text=" ".join(filter(None, (kicked, reason))),
            raw=msg,
        )

    # -- modes, topics, errors ---------------------------------------------

    def _on_mode(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        target = msg.params[0]
        modes = " ".join(msg.params[1:])
        kind = EventType.CHANNEL_MODE if c.is_channel(target) else EventType.USER_MODE
        return ClientEvent(kind, source=msg.nick, target=target, text=modes, raw=msg)

    def _on_topic(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        return ClientEvent(EventType.TOPIC, source=msg.nick, target=msg.params[0], text=msg.params[1], raw=msg)

    def _on_error(self, msg: Message) -> ClientEvent:
        text = msg.param(-1)
        logger.error("Server error: {}", text)
        return ClientEvent(EventType.ERROR, source=msg.source, text=text, auxiliary="server_error", raw=msg)

    # -- numerics ----------------------------------------------------------

    def _on_welcome(self, msg: Message) -> ClientEvent:
        # The server's idea of our nick wins (it may have been truncated)
        if msg.params:
            self._identity.nick = msg.params[0]
        self._nick_resolver.reset()
        self._registration.complete()
        return ClientEvent(EventType.REGISTERED, source=msg.source, text=msg.param(-1), raw=msg)

    def _on_umodeis(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        return ClientEvent(
            EventType.USER_MODE,
            source=msg.source,
            target=msg.params[0],
            text=" ".join(msg.params[1:]),
            raw=msg,
        )

    def _on_whois(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 3:
            return None
        return ClientEvent(
            EventType.WHOIS_REPLY,
            source=msg.source,
            target=msg.params[1],
            text=" ".join(msg.params[2:]),
            auxiliary=msg.command,
            raw=msg,
        )

    def _on_channelmodeis(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 3:
            return None
        return ClientEvent(
            EventType.CHANNEL_MODE,
            source=msg.source,
            target=msg.params[1],
            text=" ".join(msg.params[2:]),
            raw=msg,
        )

    def _on_rpl_topic(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 3:
            return None
        return ClientEvent(EventType.TOPIC, source=msg.source, target=msg.params[1], text=msg.params[2], raw=msg)

    def _on_topicwhotime(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 3:
            return None
        return ClientEvent(
            EventType.TOPIC_INFO,
            source=msg.source,
            target=msg.params[1],
            text=msg.params[2],
            auxiliary=msg.param(3) or None,
            raw=msg,
        )

    def _on_namreply(self, msg: Message) -> ClientEvent | None:
        # <me> <type> <channel> :<names>
        if len(msg.params) < 4:
            return None
        channel, names = msg.params[2], msg.params[3]
        listed = names.split()
        if not self._channels.merge_names(channel, listed):
            logger.debug("NAMES for {} which we have not joined; membership not stored", channel)
        return ClientEvent(
            EventType.NAMES,
            source=msg.source,
            target=channel,
            text=" ".join(strip_member_prefix(n) for n in listed),
            auxiliary=names,
            raw=msg,
        )

    def _on_nicknameinuse(self, msg: Message) -> ClientEvent:
        rejected = msg.param(1) or self._identity.nick
        return self._nick_resolver.resolve(rejected)

    def _on_join_error(self, msg: Message) -> ClientEvent | None:
        if len(msg.params) < 2:
            return None
        channel = msg.params[1]
        reason = msg.param(2, "Cannot join channel")
        logger.warning("Cannot join {} ({}): {}", channel, msg.command, reason)
        return ClientEvent(
            EventType.JOIN_ERROR,
            source=msg.source,
            target=channel,
            text=reason,
            auxiliary=msg.command,
            raw=msg,
        )
