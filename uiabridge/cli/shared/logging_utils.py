"""Loguru helpers for consistent host logging in CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from uiabridge.utils.helpers import get_logs_path

_SINK_IDS: dict[str, int] = {}
_STDERR_SINK: dict[str, int] = {}


def ensure_rotating_log_file(name: str, level: str = "INFO") -> Path:
    """Ensure a rotating log sink for the given command name."""
    log_path = get_logs_path() / f"{name}.log"
    if name in _SINK_IDS:
        return log_path
    sink_id = logger.add(
        str(log_path),
        level=level.upper(),
        rotation="10 MB",
        retention="14 days",
        enqueue=True,
        encoding="utf-8",
        backtrace=False,
        diagnose=False,
    )
    _SINK_IDS[name] = sink_id
    return log_path


def set_console_log_level(level: str) -> None:
    """Replace loguru's default stderr handler with one at ``level``."""
    # 0 is loguru's default handler
    try:
        logger.remove(_STDERR_SINK.pop("stderr", 0))
    except ValueError:
        pass
    _STDERR_SINK["stderr"] = logger.add(sys.stderr, level=level.upper())
