"""Wire protocol: line grammar and CTCP."""

from ircengine.protocol.ctcp import is_ctcp, parse_ctcp, wrap_ctcp
from ircengine.protocol.message import Message, extract_nick, format_line, parse_line

__all__ = [
    "Message",
    "extract_nick",
    "format_line",
    "is_ctcp",
    "parse_ctcp",
    "parse_line",
    "wrap_ctcp",
]
