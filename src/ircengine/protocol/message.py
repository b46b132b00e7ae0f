"""IRC wire grammar: ``[:prefix] command param* [:trailing]``, tokenized left to right."""

from __future__ import annotations

from dataclasses import dataclass

from ircengine.core.errors import IRCProtocolError

_FORBIDDEN = ("\r", "\n", "\0")


@dataclass(frozen=True)
class Message:
    """One parsed inbound line. The trailing parameter, if any, is the last of params."""

    source: str | None
    command: str
    params: tuple[str, ...] = ()

    @property
    def nick(self) -> str:
        """Nick part of the source (``nick!user@host``), or the whole source for servers."""
        return extract_nick(self.source)

    @property
    def is_numeric(self) -> bool:
        return len(self.command) == 3 and self.command.isdigit()

    def param(self, index: int, default: str = "") -> str:
        """params[index], or default when the line is short."""
        if -len(self.params) <= index < len(self.params):
            return self.params[index]
        return default

    def to_line(self) -> str:
        """Rebuild a wire line (without CRLF) that parses back to this message."""
        middle, trailing = list(self.params), None
        if middle and _needs_trailing(middle[-1]):
            trailing = middle.pop()
        line = format_line(self.command, *middle, trailing=trailing)
        if self.source is not None:
            line = f":{self.source} {line}"
        return line


def extract_nick(source: str | None) -> str:
    """Return the nick of a ``nick!user@host`` source."""
    if not source:
        return ""
    bang = source.find("!")
    return source[:bang] if bang > 0 else source


def _needs_trailing(param: str) -> bool:
    return not param or " " in param or param.startswith(":")


def _valid_command(command: str) -> bool:
    if not command.isascii():
        return False
    return command.isalpha() or (len(command) == 3 and command.isdigit())


def _skip_spaces(line: str, pos: int) -> int:
    while pos < len(line) and line[pos] == " ":
        pos += 1
    return pos


def _next_space(line: str, pos: int) -> int:
    end = line.find(" ", pos)
    return len(line) if end == -1 else end


def parse_line(line: str) -> Message | None:
    """Parse one line. Returns None when the line does not follow the grammar."""
    line = line.rstrip("\r\n")
    if not line:
        return None

    pos = 0
    source = None
    if line[0] in ":@":
        end = line.find(" ")
        if end <= 1:
            return None
        source = line[1:end]
        pos = end

    pos = _skip_spaces(line, pos)
    end = _next_space(line, pos)
    command = line[pos:end]
    if not _valid_command(command):
        return None
    pos = end

    params: list[str] = []
    while True:
        pos = _skip_spaces(line, pos)
        if pos >= len(line):
            break
        if line[pos] == ":":
            params.append(line[pos + 1 :])
            break
        end = _next_space(line, pos)
        params.append(line[pos:end])
        pos = end

    return Message(source=source, command=command.upper(), params=tuple(params))


def format_line(command: str, *params: str, trailing: str | None = None) -> str:
    """Build an outbound line (without CRLF).

    Middle params must be non-empty, space-free and not start with ``:``;
    the trailing param may contain anything but CR, LF and NUL.
    """
    parts = [command, *params]
    if trailing is not None:
        parts.append(trailing)
    for part in parts:
        if any(ch in part for ch in _FORBIDDEN):
            raise IRCProtocolError(
                "IRC line may not contain CR, LF or NUL",
                code="invalid_line",
                details={"command": command},
            )
    if not _valid_command(command):
        raise IRCProtocolError(f"Invalid command token {command!r}", code="invalid_command")
    for param in params:
        if _needs_trailing(param):
            raise IRCProtocolError(
                f"Middle parameter {param!r} must be non-empty without spaces",
                code="invalid_param",
                details={"command": command},
            )
    line = " ".join([command, *params])
    if trailing is not None:
        line = f"{line} :{trailing}"
    return line
