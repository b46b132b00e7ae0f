"""Config schema and accessor."""

from __future__ import annotations

import os
from typing import Any, NamedTuple

from loguru import logger

from ircengine import __version__
from ircengine.core.constants import DEFAULT_PLAIN_PORT, DEFAULT_TLS_PORT
from ircengine.core.errors import IRCConfigurationError

# Env keys that override config (loaded once per reload)
_ENV_OVERRIDE_KEYS = (
    "IRC_SERVER",
    "IRC_PORT",
    "IRC_NICK",
    "IRC_PASSWORD",
    "IRC_NICKSERV_PASSWORD",
    "IRC_TLS_VERIFY",
)

DEFAULT_SERVER = "irc.swiftirc.net"
DEFAULT_NICK = "ircengine"


def _load_env_overrides() -> dict[str, str]:
    """Load env overrides once per reload."""
    return {k: os.environ.get(k, "") for k in _ENV_OVERRIDE_KEYS}


def _parse_bool_env(val: str) -> bool | None:
    """Parse env string to bool; None if not a recognized bool."""
    v = val.lower()
    if v in ("1", "true", "yes"):
        return True
    if v in ("0", "false", "no"):
        return False
    return None


class ChannelSpec(NamedTuple):
    """A channel to join on registration, with its optional key."""

    name: str
    key: str | None = None


class Config:
    """Config accessor with attribute-style access for nested keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}
        self._env: dict[str, str] = _load_env_overrides()

    def reload(self, data: dict[str, Any], *, validate: bool = True) -> None:
        """Replace config data (e.g. on SIGHUP reload)."""
        self._data = data or {}
        self._env = _load_env_overrides()
        if validate:
            self._validate()
        logger.debug("Config reloaded: {} as {}, {} channel(s)", self.server, self.nick, len(self.channels))

    def _validate(self) -> None:
        """Validate config structure; raise IRCConfigurationError on failure."""
        nick = self.nick
        if not nick or " " in nick:
            raise IRCConfigurationError(
                "nick must be a non-empty word",
                code="invalid_nick",
                details={"nick": nick},
            )
        username = self.username
        if " " in username:
            raise IRCConfigurationError(
                "username must be a single word",
                code="invalid_username",
                details={"username": username},
            )
        try:
            port = self.port
        except (TypeError, ValueError) as exc:
            raise IRCConfigurationError(
                "port must be an integer",
                code="invalid_port",
                details={"port": self._env.get("IRC_PORT") or self._data.get("port")},
                original_error=exc,
            ) from exc
        if not 0 < port < 65536:
            raise IRCConfigurationError("port out of range", code="invalid_port", details={"port": port})

        channels = self._data.get("channels")
        if channels is not None and not isinstance(channels, list):
            raise IRCConfigurationError(
                "channels must be a list",
                code="invalid_channels",
                details={"type": type(channels).__name__},
            )
        for i, item in enumerate(channels or []):
            if isinstance(item, str) and item:
                continue
            if isinstance(item, dict) and item.get("name"):
                continue
            raise IRCConfigurationError(
                f"channels[{i}] must be a name or a dict with 'name'",
                code="invalid_channel_item",
                details={"index": i},
            )

        attempts = self._data.get("max_nick_attempts", 10)
        if attempts is not None and (not isinstance(attempts, int) or attempts < 0):
            raise IRCConfigurationError(
                "max_nick_attempts must be a non-negative integer or null",
                code="invalid_max_nick_attempts",
                details={"value": attempts},
            )

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def _str_or_none(self, key: str, env_key: str | None = None) -> str | None:
        if env_key and self._env.get(env_key):
            return self._env[env_key]
        val = self._data.get(key)
        if val is None or str(val) == "":
            return None
        return str(val)

    @property
    def server(self) -> str:
        return self._str_or_none("server", "IRC_SERVER") or DEFAULT_SERVER

    @property
    def tls(self) -> bool:
        return bool(self._data.get("tls", True))

    @property
    def port(self) -> int:
        env_val = self._env.get("IRC_PORT", "")
        if env_val:
            return int(env_val)
        val = self._data.get("port")
        if val is None:
            return DEFAULT_TLS_PORT if self.tls else DEFAULT_PLAIN_PORT
        return int(val)

    @property
    def tls_verify(self) -> bool:
        parsed = _parse_bool_env(self._env.get("IRC_TLS_VERIFY", ""))
        if parsed is not None:
            return parsed
        return bool(self._data.get("tls_verify", True))

    @property
    def nick(self) -> str:
        return self._str_or_none("nick", "IRC_NICK") or DEFAULT_NICK

    @property
    def username(self) -> str:
        return self._str_or_none("username") or "ircengine"

    @property
    def realname(self) -> str:
        return self._str_or_none("realname") or self.nick

    @property
    def password(self) -> str | None:
        """Server password (PASS)."""
        return self._str_or_none("password", "IRC_PASSWORD")

    @property
    def nickserv_password(self) -> str | None:
        return self._str_or_none("nickserv_password", "IRC_NICKSERV_PASSWORD")

    @property
    def channels(self) -> list[ChannelSpec]:
        """Channels to join once registered."""
        val = self._data.get("channels")
        if not isinstance(val, list):
            return []
        specs = []
        for item in val:
            if isinstance(item, str) and item:
                specs.append(ChannelSpec(item))
            elif isinstance(item, dict) and item.get("name"):
                key = item.get("key")
                specs.append(ChannelSpec(str(item["name"]), str(key) if key else None))
        return specs

    @property
    def read_timeout(self) -> float | None:
        val = self._data.get("read_timeout", 120)
        return None if val is None else float(val)

    @property
    def connect_timeout(self) -> float:
        return float(self._data.get("connect_timeout", 30))

    @property
    def ping_timeout(self) -> float:
        """Idle seconds before a keepalive PING is sent."""
        return float(self._data.get("ping_timeout", 60))

    @property
    def ping_interval(self) -> float:
        """Seconds between ping_check() ticks."""
        return float(self._data.get("ping_interval", 30))

    @property
    def nick_suffix(self) -> str:
        return str(self._data.get("nick_suffix", "_")) or "_"

    @property
    def max_nick_attempts(self) -> int | None:
        val = self._data.get("max_nick_attempts", 10)
        return None if val is None else int(val)

    @property
    def ctcp_version(self) -> str:
        return str(self._data.get("ctcp_version") or f"ircengine {__version__}")

    @property
    def quit_message(self) -> str:
        return str(self._data.get("quit_message") or "Disconnecting")


cfg: Config = Config({})
