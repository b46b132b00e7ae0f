"""Protocol constants."""

from __future__ import annotations

DEFAULT_TLS_PORT = 6697
DEFAULT_PLAIN_PORT = 6667

CHANNEL_PREFIXES = "#&+!"
# Privilege prefixes seen in NAMES replies (owner, admin, op, halfop, voice)
MEMBER_PREFIXES = "~&@%+"

CTCP_DELIMITER = "\x01"

# Numeric replies
RPL_WELCOME = "001"
RPL_UMODEIS = "221"
RPL_CHANNELMODEIS = "324"
RPL_TOPIC = "332"
RPL_TOPICWHOTIME = "333"
RPL_NAMREPLY = "353"
RPL_WHOISSECURE = "671"
ERR_NICKNAMEINUSE = "433"
ERR_FORBIDDENCHANNEL = "448"
ERR_CHANNELISFULL = "471"
ERR_INVITEONLYCHAN = "473"
ERR_BANNEDFROMCHAN = "474"
ERR_BADCHANNELKEY = "475"

# RPL_WHOISUSER (311) through 320, forwarded line by line
WHOIS_NUMERICS: frozenset[str] = frozenset({*(str(n) for n in range(311, 321)), RPL_WHOISSECURE})

JOIN_ERROR_NUMERICS: frozenset[str] = frozenset(
    {
        ERR_FORBIDDENCHANNEL,
        ERR_CHANNELISFULL,
        ERR_INVITEONLYCHAN,
        ERR_BANNEDFROMCHAN,
        ERR_BADCHANNELKEY,
    }
)


def is_channel(target: str | None) -> bool:
    """True if target names a channel rather than a nick."""
    return bool(target) and target[0] in CHANNEL_PREFIXES
