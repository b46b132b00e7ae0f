"""Configuration: YAML + env overlay."""

from ircengine.config.loader import _deep_update, load_config, load_config_with_env, local_overlay_path
from ircengine.config.schema import ChannelSpec, Config, cfg

__all__ = [
    "ChannelSpec",
    "Config",
    "_deep_update",
    "cfg",
    "load_config",
    "load_config_with_env",
    "local_overlay_path",
]
