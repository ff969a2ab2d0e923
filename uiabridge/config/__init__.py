"""Configuration module for uiabridge."""

from uiabridge.config.access import clear_config_cache, get_config
from uiabridge.config.loader import get_config_path, load_config, save_config
from uiabridge.config.schema import Config

__all__ = ["Config", "clear_config_cache", "get_config", "get_config_path", "load_config", "save_config"]
