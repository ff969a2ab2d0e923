"""Automation backend contract.

Every call may raise, may block indefinitely, or may take the whole worker
process down. Callers in the worker invoke a backend only from inside a
single operation handler, so the dispatch boundary and the supervisor's
deadline both apply.
"""

from __future__ import annotations

import copy
import fnmatch
import re
import time
from collections import OrderedDict
from dataclasses import dataclass, fields
from typing import Any, Protocol, runtime_checkable

from uiabridge.utils.exceptions import ValidationError

# Pattern identifiers accepted by AutomationBackend.call_pattern.
PATTERNS = (
    "invoke",
    "value",
    "toggle",
    "range",
    "selection_item",
    "selection",
    "text",
    "scroll",
    "scroll_item",
    "expand_collapse",
    "dock",
    "transform",
    "window",
    "grid",
    "grid_item",
    "table",
    "focus",
    "multiple_view",
    "legacy_accessible",
)

# Pattern actions that only read state; anything else may change the tree.
READ_ACTIONS = frozenset(
    {
        "get",
        "get_state",
        "get_info",
        "get_text",
        "get_selection",
        "get_views",
        "get_view_name",
        "get_properties",
        "is_read_only",
        "is_selected",
        "find",
        "info",
        "item",
        "column_headers",
        "row_headers",
    }
)

SEARCH_SCOPES = ("element", "children", "descendants", "subtree")


@dataclass(slots=True)
class ElementLocator:
    """Identifies one element: id (automation id, name or runtime id) within an optional window/process."""

    element_id: str = ""
    window_title: str = ""
    process_id: int = 0

    def describe(self) -> str:
        parts = [self.element_id or "<window>"]
        if self.window_title:
            parts.append(f"window={self.window_title!r}")
        if self.process_id:
            parts.append(f"pid={self.process_id}")
        return " ".join(parts)


@dataclass(slots=True)
class ElementQuery:
    """Search criteria for find_elements."""

    search_text: str = ""
    name: str = ""
    automation_id: str = ""
    class_name: str = ""
    control_type: str = ""
    window_title: str = ""
    process_id: int = 0
    scope: str = "descendants"
    required_pattern: str = ""
    visible_only: bool = False
    enabled_only: bool = False
    use_regex: bool = False
    use_wildcard: bool = False
    max_results: int = 100
    use_cache: bool = True


class SearchCache:
    """
    Recent find_elements results keyed by query.

    Holds at most ``capacity`` entries, dropping the least recently used one
    first. An entry older than ``ttl_seconds`` is a miss. Callers get copies,
    so a handler can never edit a cached result in place.
    """

    def __init__(self, capacity: int = 64, ttl_seconds: float = 5.0, clock=time.monotonic):
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[tuple, tuple[float, list[dict[str, Any]]]] = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(query: ElementQuery) -> tuple:
        return tuple(getattr(query, f.name) for f in fields(query) if f.name != "use_cache")

    def get(self, query: ElementQuery) -> list[dict[str, Any]] | None:
        key = self.key(query)
        entry = self._entries.get(key)
        if entry is None or self._clock() - entry[0] > self.ttl_seconds:
            self._entries.pop(key, None)
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return copy.deepcopy(entry[1])

    def put(self, query: ElementQuery, results: list[dict[str, Any]]) -> None:
        if self.capacity <= 0:
            return
        key = self.key(query)
        self._entries[key] = (self._clock(), copy.deepcopy(results))
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


@runtime_checkable
class AutomationBackend(Protocol):
    """Capability surface the operation handlers call into."""

    name: str

    def find_elements(self, query: ElementQuery) -> list[dict[str, Any]]:
        ...

    def get_element_info(self, locator: ElementLocator) -> dict[str, Any]:
        ...

    def get_children(self, locator: ElementLocator) -> list[dict[str, Any]]:
        ...

    def get_tree(self, locator: ElementLocator | None, max_depth: int) -> dict[str, Any]:
        ...

    def get_desktop_windows(self, include_invisible: bool = False) -> list[dict[str, Any]]:
        ...

    def call_pattern(
        self,
        locator: ElementLocator,
        pattern: str,
        action: str,
        arguments: dict[str, Any] | None = None,
    ) -> Any:
        """Run one pattern action on an element and return its JSON-ready result."""
        ...

    def close(self) -> None:
        ...


def _text_matches(pattern: str, value: str, query: ElementQuery, *, partial: bool) -> bool:
    if query.use_regex:
        try:
            return re.search(pattern, value, re.IGNORECASE) is not None
        except re.error as exc:
            raise ValidationError(f"Invalid regex pattern: {exc}", field="searchText") from exc
    if query.use_wildcard:
        return fnmatch.fnmatchcase(value.lower(), pattern.lower())
    if partial:
        return pattern.lower() in value.lower()
    return pattern.lower() == value.lower()


def query_matches(info: dict[str, Any], query: ElementQuery) -> bool:
    """Check an element info dict (as returned by backends) against a query."""
    name = str(info.get("name") or "")
    automation_id = str(info.get("automationId") or "")
    if query.search_text and not (
        _text_matches(query.search_text, name, query, partial=True)
        or _text_matches(query.search_text, automation_id, query, partial=True)
    ):
        return False
    if query.name and not _text_matches(query.name, name, query, partial=False):
        return False
    if query.automation_id and query.automation_id.lower() != automation_id.lower():
        return False
    if query.class_name and query.class_name.lower() != str(info.get("className") or "").lower():
        return False
    if query.control_type and query.control_type.lower() != str(info.get("controlType") or "").lower():
        return False
    if query.required_pattern and query.required_pattern not in (info.get("supportedPatterns") or []):
        return False
    if query.visible_only and not info.get("isVisible", True):
        return False
    if query.enabled_only and not info.get("isEnabled", True):
        return False
    return True


# MSAA STATE_SYSTEM_* bits, lowest first.
LEGACY_STATE_FLAGS = (
    "Unavailable",
    "Selected",
    "Focused",
    "Pressed",
    "Checked",
    "Mixed",
    "ReadOnly",
    "HotTracked",
    "Default",
    "Expanded",
    "Collapsed",
    "Busy",
    "Floating",
    "Marqueed",
    "Animated",
    "Invisible",
    "Offscreen",
    "Sizeable",
    "Moveable",
    "SelfVoicing",
    "Focusable",
    "Selectable",
    "Linked",
    "Traversed",
    "MultiSelectable",
    "ExtSelectable",
    "AlertLow",
    "AlertMedium",
    "AlertHigh",
    "Protected",
    "HasPopup",
)

# MSAA SELFLAG_* values accepted by legacy_accessible.select.
SELFLAG_TAKEFOCUS = 0x1
SELFLAG_TAKESELECTION = 0x2
SELFLAG_EXTENDSELECTION = 0x4
SELFLAG_ADDSELECTION = 0x8
SELFLAG_REMOVESELECTION = 0x10
SELFLAG_MASK = 0x1F


def legacy_state_names(state: int) -> list[str]:
    """Names of the STATE_SYSTEM_* bits set in ``state``."""
    return [name for bit, name in enumerate(LEGACY_STATE_FLAGS) if state & (1 << bit)]


def check_select_flags(flags: int) -> int:
    if flags <= 0 or flags & ~SELFLAG_MASK:
        raise ValidationError(f"Invalid flagsSelect: {flags}. Combine SELFLAG values 0x1-0x10", field="flagsSelect")
    if flags & SELFLAG_ADDSELECTION and flags & SELFLAG_REMOVESELECTION:
        raise ValidationError("flagsSelect cannot both add and remove the selection", field="flagsSelect")
    return flags
