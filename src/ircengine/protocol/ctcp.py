"""CTCP: commands embedded in PRIVMSG/NOTICE text between \\x01 delimiters."""

from __future__ import annotations

from ircengine.core.constants import CTCP_DELIMITER


def is_ctcp(text: str) -> bool:
    return len(text) >= 2 and text.startswith(CTCP_DELIMITER) and text.endswith(CTCP_DELIMITER)


def parse_ctcp(text: str) -> tuple[str, str]:
    """Split a wrapped payload into (COMMAND, argument)."""
    command, _, argument = text[1:-1].partition(" ")
    return command.upper(), argument


def wrap_ctcp(command: str, argument: str = "") -> str:
    body = f"{command} {argument}" if argument else command
    return f"{CTCP_DELIMITER}{body}{CTCP_DELIMITER}"
