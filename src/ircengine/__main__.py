"""Console client: connect, log every event, keep the connection alive."""

from __future__ import annotations

import argparse
import os
import random
import signal
import sys
import threading
from pathlib import Path
from typing import Any

from loguru import logger

from ircengine import __version__
from ircengine.client import IRCClient
from ircengine.config import Config, cfg, load_config_with_env
from ircengine.events import ClientEvent, EventType

# Backoff: min 2s, max 60s, jitter
_BACKOFF_MIN = 2
_BACKOFF_MAX = 60
_MAX_ATTEMPTS = 10


def _safe_message_filter(record: Any) -> bool:
    """Escape braces/angles in log messages to prevent format/tag errors."""
    if isinstance(record.get("message"), str):
        msg = record["message"]
        msg = msg.replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        record["message"] = msg
    return True


def setup_logging(verbose: bool = False) -> None:
    """Configure loguru.
    Level: verbose=True or LOG_LEVEL=DEBUG enables DEBUG (wire traffic); otherwise INFO."""
    level = "INFO"
    if verbose:
        level = "DEBUG"
    else:
        env_level = (os.environ.get("LOG_LEVEL") or "").upper()
        if env_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
            level = env_level

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format=("<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> | {message}"),
        filter=_safe_message_filter,
    )


def reload_config(config_path: Path) -> Config:
    """Load config from path and update global cfg."""
    data = load_config_with_env(config_path)
    cfg.reload(data)
    return cfg


def log_event(event: ClientEvent) -> None:
    """Listener printing each event on one line."""
    if event.type is EventType.ERROR:
        logger.error("[{}] {}", event.auxiliary or "error", event.text)
        return
    where = event.target or "*"
    who = event.source or "-"
    text = event.text or ""
    if event.auxiliary and event.type in (EventType.QUIT, EventType.NICK_CHANGE):
        text = f"{text} ({event.auxiliary})"
    logger.info("{} [{}] {}: {}", event.type.value, where, who, text)


def queue_session_commands(client: IRCClient, config: Config) -> None:
    """Identify and join channels once registered (re-queued for every connection)."""
    password = config.nickserv_password
    if password:
        client.execute_when_registered(lambda: client.identify(password))
    for channel in config.channels:
        client.join_channel(channel.name, channel.key)


def connect_with_backoff(client: IRCClient, stop: threading.Event) -> bool:
    """Connect with exponential backoff and jitter. False when giving up or stopping."""
    attempt = 0
    while not stop.is_set():
        if client.connect():
            return True
        attempt += 1
        if attempt >= _MAX_ATTEMPTS:
            logger.error("IRC connect failed after {} attempts", _MAX_ATTEMPTS)
            return False
        delay = min(_BACKOFF_MAX, _BACKOFF_MIN * (2 ** (attempt - 1)))
        wait = delay * random.uniform(0.5, 1.5)
        logger.warning("IRC connect failed (attempt {}), retrying in {:.1f}s", attempt, wait)
        stop.wait(wait)
    return False


def run(client: IRCClient, config: Config, stop: threading.Event) -> None:
    """Keep the client connected until stop is set."""
    first = True
    while not stop.is_set():
        if not client.is_connected():
            if not first:
                wait = _BACKOFF_MIN * random.uniform(0.5, 1.5)
                logger.info("IRC disconnected, reconnecting in {:.1f}s", wait)
                if stop.wait(wait):
                    break
            first = False
            queue_session_commands(client, config)
            if not connect_with_backoff(client, stop):
                break
        if stop.wait(config.ping_interval):
            break
        client.ping_check()
    client.disconnect(config.quit_message)


def main() -> None:
    """Main entrypoint."""
    parser = argparse.ArgumentParser(description="ircengine: console IRC client")
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging (wire traffic)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    args = parser.parse_args()

    setup_logging(args.verbose)

    if not args.config.exists():
        logger.error("Config file not found: {}", args.config)
        sys.exit(1)

    config = reload_config(args.config)
    logger.info("Config loaded from {}", args.config)

    client = IRCClient.from_config(config)
    client.add_event_listener(log_event)

    stop = threading.Event()

    def on_stop(*a: object) -> None:
        logger.info("Shutting down")
        stop.set()

    # SIGHUP re-reads the file; new settings apply to the next connection's joins
    def on_sighup(*a: object) -> None:
        reload_config(args.config)
        logger.info("Config reloaded (SIGHUP)")

    signal.signal(signal.SIGINT, on_stop)
    signal.signal(signal.SIGTERM, on_stop)
    signal.signal(signal.SIGHUP, on_sighup)

    run(client, config, stop)


if __name__ == "__main__":
    main()
