"""Cached configuration access facade.

The host reads config from several threads (pool members, MCP tool calls),
so lookups go through one process-wide cache keyed by resolved path.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path

from uiabridge.config.loader import get_config_path, load_config
from uiabridge.config.schema import Config

CONFIG_PATH_ENV = "UIABRIDGE_CONFIG"

_lock = threading.RLock()
_cache: dict[Path, Config] = {}


def resolve_config_path(config_path: Path | None = None) -> Path:
    """Explicit path, then $UIABRIDGE_CONFIG, then ~/.uiabridge/config.json."""
    if config_path is None:
        override = os.environ.get(CONFIG_PATH_ENV, "").strip()
        config_path = Path(override) if override else get_config_path()
    return Path(config_path).expanduser().resolve()


def get_config(*, config_path: Path | None = None, force_reload: bool = False) -> Config:
    """Get config with process-local cache and optional refresh."""
    path = resolve_config_path(config_path)
    with _lock:
        cached = _cache.get(path)
        if cached is None or force_reload:
            cached = _cache[path] = load_config(path)
        return cached


def clear_config_cache(*, config_path: Path | None = None) -> None:
    """Drop one cached entry, or all of them when no path is given."""
    with _lock:
        if config_path is None:
            _cache.clear()
        else:
            _cache.pop(resolve_config_path(config_path), None)
