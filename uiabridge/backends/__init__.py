"""Automation backends: the capability providers operation handlers call into."""

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from uiabridge.backends.base import AutomationBackend, ElementLocator, ElementQuery, query_matches
from uiabridge.backends.memory import MemoryBackend
from uiabridge.utils.exceptions import BackendError

BACKEND_NAMES = ("auto", "memory", "uia")


def create_backend(name: str = "auto", fixture_path: str | Path | None = None) -> AutomationBackend:
    """Create a backend by name; "auto" picks uia on Windows and memory elsewhere."""
    choice = (name or "auto").strip().lower()
    if choice not in BACKEND_NAMES:
        raise BackendError(f"Unknown backend: {name}. Available: {', '.join(BACKEND_NAMES)}")
    if choice == "auto":
        choice = "uia" if sys.platform == "win32" and not fixture_path else "memory"
    if choice == "memory":
        logger.debug("Using memory backend (fixture={})", fixture_path or "<sample>")
        return MemoryBackend(fixture_path=fixture_path)
    try:
        from uiabridge.backends.uia import UiaBackend
        return UiaBackend()
    except ImportError as exc:
        raise BackendError(
            f"pywinauto is required for the uia backend ({exc}); install uiabridge[windows]",
            backend="uia",
        ) from exc


__all__ = [
    "AutomationBackend",
    "BACKEND_NAMES",
    "ElementLocator",
    "ElementQuery",
    "MemoryBackend",
    "create_backend",
    "query_matches",
]
