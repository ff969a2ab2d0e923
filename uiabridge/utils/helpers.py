"""Filesystem helpers."""

from __future__ import annotations

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the uiabridge data directory (~/.uiabridge)."""
    return ensure_dir(Path.home() / ".uiabridge")


def get_logs_path() -> Path:
    return ensure_dir(get_data_path() / "logs")
