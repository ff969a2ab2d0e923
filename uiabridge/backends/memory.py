"""In-memory automation backend.

Holds a deterministic element tree (from a JSON fixture or the built-in sample
desktop) and implements pattern actions against simple per-element state.
Elements may carry a ``fault`` that makes every pattern call hang, crash the
process, or fail, which is how the supervision layer is exercised without a
real accessibility stack.
"""

from __future__ import annotations

import itertools
import json
import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from uiabridge.backends.base import (
    LEGACY_STATE_FLAGS,
    PATTERNS,
    READ_ACTIONS,
    SEARCH_SCOPES,
    SELFLAG_ADDSELECTION,
    SELFLAG_EXTENDSELECTION,
    SELFLAG_REMOVESELECTION,
    SELFLAG_TAKEFOCUS,
    SELFLAG_TAKESELECTION,
    ElementLocator,
    ElementQuery,
    SearchCache,
    check_select_flags,
    legacy_state_names,
    query_matches,
)
from uiabridge.backends.sample import sample_desktop
from uiabridge.utils.exceptions import (
    AccessDeniedError,
    ElementNotFoundError,
    InvalidOperationError,
    NotSupportedError,
    OperationTimeoutError,
    ValidationError,
)

# Exit code used by the "crash" fault.
CRASH_EXIT_CODE = 3
FAULT_PID_FILE_ENV = "UIABRIDGE_FAULT_PID_FILE"

TOGGLE_STATES = ("Off", "On", "Indeterminate")
WINDOW_STATES = ("Normal", "Maximized", "Minimized")
DOCK_POSITIONS = ("Top", "Left", "Bottom", "Right", "Fill", "None")
EXPAND_ACTIONS = ("expand", "collapse", "toggle")
SCROLL_STEP = 10.0


def load_fixture(path: str | Path) -> dict[str, Any]:
    """Read a desktop fixture file: {"windows": [element, ...]}."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get("windows"), list):
        raise ValueError(f"Fixture {path} must be an object with a 'windows' list")
    return data


def _match_choice(value: str, choices: tuple[str, ...], field: str) -> str:
    for choice in choices:
        if choice.lower() == str(value).strip().lower():
            return choice
    raise ValidationError(f"Invalid {field}: {value}. Valid values: {', '.join(choices)}", field=field)


class MemoryBackend:
    """Deterministic backend over a dict element tree."""

    name = "memory"

    def __init__(self, desktop: dict[str, Any] | None = None, *, fixture_path: str | Path | None = None):
        if desktop is None:
            desktop = load_fixture(fixture_path) if fixture_path else sample_desktop()
        self._ids = itertools.count(1)
        self._by_id: dict[str, dict[str, Any]] = {}
        self._parents: dict[str, dict[str, Any] | None] = {}
        self._windows: list[dict[str, Any]] = []
        self._focused_id: str | None = None
        self.search_cache = SearchCache()
        for window in desktop.get("windows", []):
            self._windows.append(self._prepare(window, None, int(window.get("processId") or 0)))

    def _prepare(self, node: dict[str, Any], parent: dict[str, Any] | None, process_id: int) -> dict[str, Any]:
        node.setdefault("id", f"mem-{next(self._ids)}")
        if node["id"] in self._by_id:
            raise ValueError(f"Duplicate element id in fixture: {node['id']}")
        node.setdefault("name", "")
        node.setdefault("automationId", "")
        node.setdefault("controlType", "Custom")
        node.setdefault("className", "")
        node.setdefault("processId", process_id)
        node.setdefault("isEnabled", True)
        node.setdefault("isVisible", True)
        node.setdefault("bounds", {"x": 0, "y": 0, "width": 100, "height": 20})
        node.setdefault("patterns", {})
        node.setdefault("children", [])
        self._by_id[node["id"]] = node
        self._parents[node["id"]] = parent
        for child in node["children"]:
            self._prepare(child, node, node["processId"])
        return node

    # -- traversal -------------------------------------------------------

    def _walk(self, node: dict[str, Any]) -> Iterator[dict[str, Any]]:
        yield node
        for child in node["children"]:
            yield from self._walk(child)

    def _open_windows(self) -> list[dict[str, Any]]:
        return [w for w in self._windows if not w.get("closed")]

    def _roots_for(self, window_title: str, process_id: int) -> list[dict[str, Any]]:
        windows = self._open_windows()
        if window_title:
            needle = window_title.lower()
            windows = [w for w in windows if needle in w["name"].lower()]
        if process_id:
            windows = [w for w in windows if w["processId"] == process_id]
        if not windows and (window_title or process_id):
            target = window_title or f"process {process_id}"
            raise ElementNotFoundError(target, f"Window not found: {target}")
        return windows

    def _resolve(self, locator: ElementLocator) -> dict[str, Any]:
        roots = self._roots_for(locator.window_title, locator.process_id)
        element_id = locator.element_id.strip()
        if not element_id:
            if locator.window_title or locator.process_id:
                return roots[0]
            raise ElementNotFoundError("<empty>", "Element not found: no elementId or window given")
        direct = self._by_id.get(element_id)
        nodes = [n for root in roots for n in self._walk(root)]
        if direct is not None and any(n is direct for n in nodes):
            return direct
        for key in ("automationId", "name"):
            for node in nodes:
                if node[key] == element_id:
                    return node
        raise ElementNotFoundError(locator.describe())

    def _info(self, node: dict[str, Any]) -> dict[str, Any]:
        return {
            "elementId": node["id"],
            "automationId": node["automationId"],
            "name": node["name"],
            "controlType": node["controlType"],
            "className": node["className"],
            "processId": node["processId"],
            "isEnabled": bool(node["isEnabled"]),
            "isVisible": bool(node["isVisible"]),
            "hasKeyboardFocus": node["id"] == self._focused_id,
            "boundingRectangle": dict(node["bounds"]),
            "supportedPatterns": sorted(node["patterns"]),
        }

    # -- search ----------------------------------------------------------

    def find_elements(self, query: ElementQuery) -> list[dict[str, Any]]:
        if query.use_cache:
            cached = self.search_cache.get(query)
            if cached is not None:
                return cached
        results = self._search(query)
        self.search_cache.put(query, results)
        return results

    def _search(self, query: ElementQuery) -> list[dict[str, Any]]:
        scope = query.scope.lower()
        if scope not in SEARCH_SCOPES:
            raise ValidationError(f"Invalid scope: {query.scope}. Valid scopes: {', '.join(SEARCH_SCOPES)}", field="scope")
        if query.window_title or query.process_id:
            roots = self._roots_for(query.window_title, query.process_id)
        else:
            roots = [{"children": self._open_windows()}]

        candidates: list[dict[str, Any]] = []
        for root in roots:
            if scope == "element":
                candidates.append(root)
            elif scope == "children":
                candidates.extend(root["children"])
            else:
                walked = list(self._walk(root))
                candidates.extend(walked if scope == "subtree" else walked[1:])

        results: list[dict[str, Any]] = []
        for node in candidates:
            if "id" not in node:
                continue
            info = self._info(node)
            if not query_matches(info, query):
                continue
            results.append(info)
            if query.max_results > 0 and len(results) >= query.max_results:
                break
        return results

    def get_element_info(self, locator: ElementLocator) -> dict[str, Any]:
        node = self._resolve(locator)
        info = self._info(node)
        parent = self._parents.get(node["id"])
        info["parentId"] = parent["id"] if parent else None
        info["childCount"] = len(node["children"])
        return info

    def get_children(self, locator: ElementLocator) -> list[dict[str, Any]]:
        return [self._info(child) for child in self._resolve(locator)["children"]]

    def get_tree(self, locator: ElementLocator | None, max_depth: int) -> dict[str, Any]:
        def build(node: dict[str, Any], depth: int) -> dict[str, Any]:
            entry = self._info(node) if "id" in node else {"elementId": "desktop", "name": "Desktop", "controlType": "Pane"}
            entry["children"] = [build(c, depth + 1) for c in node["children"]] if depth < max_depth else []
            return entry

        if locator is None or not (locator.element_id or locator.window_title or locator.process_id):
            return build({"children": self._open_windows()}, 0)
        return build(self._resolve(locator), 0)

    def get_desktop_windows(self, include_invisible: bool = False) -> list[dict[str, Any]]:
        windows = []
        for window in self._open_windows():
            if not include_invisible and not window["isVisible"]:
                continue
            info = self._info(window)
            info["title"] = window["name"]
            info["windowState"] = window["patterns"].get("window", {}).get("state", "Normal")
            windows.append(info)
        return windows

    # -- patterns --------------------------------------------------------

    def call_pattern(
        self,
        locator: ElementLocator,
        pattern: str,
        action: str,
        arguments: dict[str, Any] | None = None,
    ) -> Any:
        node = self._resolve(locator)
        self._apply_fault(node)
        if pattern not in PATTERNS:
            raise NotSupportedError(f"Unknown pattern: {pattern}", pattern=pattern)
        if pattern != "focus" and pattern not in node["patterns"]:
            raise NotSupportedError(
                f"Element {locator.describe()} does not support the {pattern} pattern",
                pattern=pattern,
            )
        if not node["isEnabled"] and action not in READ_ACTIONS:
            raise InvalidOperationError(f"Element {locator.describe()} is not enabled")
        handler = getattr(self, f"_{pattern}_{action}", None)
        if handler is None:
            raise NotSupportedError(f"The {pattern} pattern does not support '{action}'", pattern=pattern)
        if action not in READ_ACTIONS:
            self.search_cache.clear()
        return handler(node, node["patterns"].get(pattern, {}), **(arguments or {}))

    def _apply_fault(self, node: dict[str, Any]) -> None:
        fault = node.get("fault")
        if not fault:
            return
        logger.debug("Triggering fault {} on {}", fault, node["id"])
        if fault == "hang":
            while True:
                time.sleep(3600)
        if fault == "crash":
            sys.stderr.flush()
            os._exit(CRASH_EXIT_CODE)
        if fault == "error":
            raise RuntimeError(f"simulated backend failure on {node['automationId'] or node['id']}")
        if fault == "access_denied":
            raise AccessDeniedError("Access is denied", resource=node["automationId"] or node["id"])
        if fault == "not_supported":
            raise NotSupportedError(f"Element {node['id']} rejects all patterns")
        if fault == "hang_tree":
            helper = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(3600)"])
            pid_file = (node.get("faultArgs") or {}).get("pidFile") or os.environ.get(FAULT_PID_FILE_ENV)
            if pid_file:
                Path(pid_file).write_text(str(helper.pid), encoding="utf-8")
            while True:
                time.sleep(3600)
        raise ValueError(f"Unknown fault kind: {fault}")

    def _invoke_invoke(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        state["invokeCount"] = int(state.get("invokeCount", 0)) + 1

    def _value_get(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {"value": str(state.get("value", "")), "isReadOnly": bool(state.get("isReadOnly", False))}

    def _value_is_read_only(self, node: dict[str, Any], state: dict[str, Any]) -> bool:
        return bool(state.get("isReadOnly", False))

    def _value_set(self, node: dict[str, Any], state: dict[str, Any], value: str) -> None:
        if state.get("isReadOnly"):
            raise InvalidOperationError(f"Element {node['automationId'] or node['id']} is read-only")
        self._set_text_content(node, str(value))

    def _text_of(self, node: dict[str, Any]) -> str:
        text_state = node["patterns"].get("text", {})
        if "text" in text_state:
            return str(text_state["text"])
        return str(node["patterns"].get("value", {}).get("value", ""))

    def _set_text_content(self, node: dict[str, Any], text: str) -> None:
        if "value" in node["patterns"]:
            node["patterns"]["value"]["value"] = text
        if "text" in node["patterns"]:
            text_state = node["patterns"]["text"]
            if "text" in text_state or "value" not in node["patterns"]:
                text_state["text"] = text
            text_state.pop("selection", None)

    def _text_get_text(self, node: dict[str, Any], state: dict[str, Any], max_length: int = -1) -> dict[str, Any]:
        text = self._text_of(node)
        return {"text": text[:max_length] if max_length >= 0 else text, "length": len(text)}

    def _text_set_text(self, node: dict[str, Any], state: dict[str, Any], text: str) -> None:
        if state.get("isReadOnly") or node["patterns"].get("value", {}).get("isReadOnly"):
            raise InvalidOperationError(f"Element {node['automationId'] or node['id']} is read-only")
        self._set_text_content(node, text)

    def _text_append(self, node: dict[str, Any], state: dict[str, Any], text: str) -> dict[str, Any]:
        self._text_set_text(node, state, self._text_of(node) + text)
        return {"length": len(self._text_of(node))}

    def _text_select(self, node: dict[str, Any], state: dict[str, Any], start: int, length: int) -> dict[str, Any]:
        text = self._text_of(node)
        if start < 0 or length < 0 or start + length > len(text):
            raise ValidationError(
                f"Selection {start}+{length} is outside the text (length {len(text)})",
                field="startIndex",
            )
        state["selection"] = [start, start + length]
        return {"selectedText": text[start:start + length], "startIndex": start, "endIndex": start + length}

    def _text_find(
        self,
        node: dict[str, Any],
        state: dict[str, Any],
        text: str,
        backward: bool = False,
        ignore_case: bool = True,
    ) -> dict[str, Any]:
        haystack = self._text_of(node)
        needle = text
        if ignore_case:
            haystack, needle = haystack.lower(), needle.lower()
        index = haystack.rfind(needle) if backward else haystack.find(needle)
        if index < 0:
            return {"found": False, "startIndex": -1, "text": ""}
        return {"found": True, "startIndex": index, "text": self._text_of(node)[index:index + len(text)]}

    def _text_get_selection(self, node: dict[str, Any], state: dict[str, Any]) -> list[dict[str, Any]]:
        selection = state.get("selection")
        if not selection:
            return []
        start, end = selection
        return [{"text": self._text_of(node)[start:end], "startIndex": start, "endIndex": end}]

    def _toggle_toggle(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        state["state"] = "On" if state.get("state", "Off") == "Off" else "Off"
        return {"state": state["state"]}

    def _toggle_get_state(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {"state": state.get("state", "Off")}

    def _toggle_set_state(self, node: dict[str, Any], state: dict[str, Any], state_value: str) -> dict[str, Any]:
        state["state"] = _match_choice(state_value, TOGGLE_STATES, "toggleState")
        return {"state": state["state"]}

    def _range_get(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {
            "value": state.get("value", 0),
            "minimum": state.get("minimum", 0),
            "maximum": state.get("maximum", 100),
            "smallChange": state.get("smallChange", 1),
            "largeChange": state.get("largeChange", 10),
            "isReadOnly": bool(state.get("isReadOnly", False)),
        }

    def _range_set(self, node: dict[str, Any], state: dict[str, Any], value: float) -> dict[str, Any]:
        if state.get("isReadOnly"):
            raise InvalidOperationError(f"Element {node['automationId'] or node['id']} is read-only")
        minimum, maximum = state.get("minimum", 0), state.get("maximum", 100)
        if not minimum <= value <= maximum:
            raise ValidationError(f"Value {value} is out of range [{minimum}, {maximum}]", field="value")
        state["value"] = value
        return self._range_get(node, state)

    def _container(self, node: dict[str, Any]) -> tuple[dict[str, Any] | None, dict[str, Any]]:
        parent = self._parents.get(node["id"])
        if parent is None:
            return None, {}
        return parent, parent["patterns"].get("selection", {})

    def _selected_siblings(self, node: dict[str, Any], parent: dict[str, Any] | None) -> list[dict[str, Any]]:
        if parent is None:
            return []
        return [
            c for c in parent["children"]
            if c is not node and c["patterns"].get("selection_item", {}).get("isSelected")
        ]

    def _selection_item_select(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        parent, container = self._container(node)
        if not container.get("canSelectMultiple"):
            for sibling in self._selected_siblings(node, parent):
                sibling["patterns"]["selection_item"]["isSelected"] = False
        state["isSelected"] = True

    def _selection_item_add(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        parent, container = self._container(node)
        if not container.get("canSelectMultiple") and self._selected_siblings(node, parent):
            raise InvalidOperationError("Container does not support multiple selection")
        state["isSelected"] = True

    def _selection_item_remove(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        parent, container = self._container(node)
        if container.get("isSelectionRequired") and state.get("isSelected") and not self._selected_siblings(node, parent):
            raise InvalidOperationError("Container requires at least one selected item")
        state["isSelected"] = False

    def _selection_item_is_selected(self, node: dict[str, Any], state: dict[str, Any]) -> bool:
        return bool(state.get("isSelected", False))

    def _selection_get_selection(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        selected = [
            self._info(c) for c in node["children"]
            if c["patterns"].get("selection_item", {}).get("isSelected")
        ]
        return {
            "canSelectMultiple": bool(state.get("canSelectMultiple", False)),
            "isSelectionRequired": bool(state.get("isSelectionRequired", False)),
            "selectedItems": selected,
        }

    def _selection_clear(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        if state.get("isSelectionRequired"):
            raise InvalidOperationError("Container requires at least one selected item")
        for child in node["children"]:
            if "selection_item" in child["patterns"]:
                child["patterns"]["selection_item"]["isSelected"] = False

    def _scroll_get_info(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {
            "horizontalPercent": state.get("horizontalPercent", -1),
            "verticalPercent": state.get("verticalPercent", -1),
            "horizontalViewSize": state.get("horizontalViewSize", 100),
            "verticalViewSize": state.get("verticalViewSize", 100),
            "horizontallyScrollable": bool(state.get("horizontallyScrollable", False)),
            "verticallyScrollable": bool(state.get("verticallyScrollable", False)),
        }

    def _scroll_scroll(self, node: dict[str, Any], state: dict[str, Any], direction: str, amount: float = 1.0) -> dict[str, Any]:
        direction = _match_choice(direction, ("up", "down", "left", "right"), "direction")
        axis = "vertical" if direction in ("up", "down") else "horizontal"
        if not state.get(f"{axis}lyScrollable"):
            raise InvalidOperationError(f"Element is not {axis}ly scrollable")
        sign = 1 if direction in ("down", "right") else -1
        current = float(state.get(f"{axis}Percent", 0))
        state[f"{axis}Percent"] = max(0.0, min(100.0, current + sign * amount * SCROLL_STEP))
        return self._scroll_get_info(node, state)

    def _scroll_set_percent(
        self,
        node: dict[str, Any],
        state: dict[str, Any],
        horizontal: float = -1,
        vertical: float = -1,
    ) -> dict[str, Any]:
        for axis, value in (("horizontal", horizontal), ("vertical", vertical)):
            if value == -1:
                continue
            if not 0 <= value <= 100:
                raise ValidationError(f"{axis}Percent must be between 0 and 100 (or -1)", field=f"{axis}Percent")
            state[f"{axis}Percent"] = float(value)
        return self._scroll_get_info(node, state)

    def _scroll_item_scroll_into_view(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        parent = self._parents.get(node["id"])
        if parent is not None and "scroll" in parent["patterns"]:
            parent["patterns"]["scroll"]["verticalPercent"] = 100.0

    def _expand_collapse_get_state(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {"state": state.get("state", "Collapsed")}

    def _expand_collapse_set(self, node: dict[str, Any], state: dict[str, Any], action: str) -> dict[str, Any]:
        action = _match_choice(action, EXPAND_ACTIONS, "action")
        current = state.get("state", "Collapsed")
        if current == "LeafNode":
            raise InvalidOperationError("Element is a leaf node and cannot be expanded or collapsed")
        if action == "toggle":
            action = "expand" if current == "Collapsed" else "collapse"
        state["state"] = "Expanded" if action == "expand" else "Collapsed"
        return {"state": state["state"]}

    def _dock_get(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {"position": state.get("position", "None")}

    def _dock_set(self, node: dict[str, Any], state: dict[str, Any], position: str) -> dict[str, Any]:
        state["position"] = _match_choice(position, DOCK_POSITIONS, "dockPosition")
        return {"position": state["position"]}

    def _transform_get_info(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {
            "canMove": bool(state.get("canMove", False)),
            "canResize": bool(state.get("canResize", False)),
            "canRotate": bool(state.get("canRotate", False)),
            "rotation": state.get("rotation", 0),
            "boundingRectangle": dict(node["bounds"]),
        }

    def _transform_move(self, node: dict[str, Any], state: dict[str, Any], x: float, y: float) -> dict[str, Any]:
        if not state.get("canMove"):
            raise InvalidOperationError("Element cannot be moved")
        node["bounds"].update({"x": x, "y": y})
        return self._transform_get_info(node, state)

    def _transform_resize(self, node: dict[str, Any], state: dict[str, Any], width: float, height: float) -> dict[str, Any]:
        if not state.get("canResize"):
            raise InvalidOperationError("Element cannot be resized")
        if width <= 0 or height <= 0:
            raise ValidationError("width and height must be positive", field="width")
        node["bounds"].update({"width": width, "height": height})
        return self._transform_get_info(node, state)

    def _transform_rotate(self, node: dict[str, Any], state: dict[str, Any], degrees: float) -> dict[str, Any]:
        if not state.get("canRotate"):
            raise InvalidOperationError("Element cannot be rotated")
        state["rotation"] = (float(state.get("rotation", 0)) + degrees) % 360
        return self._transform_get_info(node, state)

    def _window_get_state(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {
            "state": state.get("state", "Normal"),
            "interactionState": state.get("interactionState", "ReadyForUserInteraction"),
            "canMaximize": bool(state.get("canMaximize", True)),
            "canMinimize": bool(state.get("canMinimize", True)),
            "isModal": bool(state.get("isModal", False)),
            "isTopmost": bool(state.get("isTopmost", False)),
        }

    def _window_get_info(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        info = self._info(node)
        info["title"] = node["name"]
        info.update(self._window_get_state(node, state))
        return info

    def _window_set_state(self, node: dict[str, Any], state: dict[str, Any], state_value: str) -> dict[str, Any]:
        target = _match_choice(state_value, WINDOW_STATES, "windowState")
        if target == "Maximized" and not state.get("canMaximize", True):
            raise InvalidOperationError("Window cannot be maximized")
        if target == "Minimized" and not state.get("canMinimize", True):
            raise InvalidOperationError("Window cannot be minimized")
        state["state"] = target
        return {"state": target}

    def _window_close(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        node["closed"] = True
        node["isVisible"] = False

    def _window_set_focus(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        if state.get("state") == "Minimized":
            state["state"] = "Normal"
        self._focused_id = node["id"]

    def _window_wait_for_state(
        self,
        node: dict[str, Any],
        state: dict[str, Any],
        state_value: str,
        timeout_seconds: float,
    ) -> dict[str, Any]:
        target = _match_choice(state_value, WINDOW_STATES, "windowState")
        deadline = time.monotonic() + timeout_seconds
        while state.get("state", "Normal") != target:
            if time.monotonic() >= deadline:
                raise OperationTimeoutError("WaitForWindowState", timeout_seconds)
            time.sleep(0.05)
        return {"state": target}

    def _window_wait_for_input_idle(self, node: dict[str, Any], state: dict[str, Any], timeout_ms: int) -> dict[str, Any]:
        return {"idle": state.get("interactionState", "ReadyForUserInteraction") == "ReadyForUserInteraction"}

    def _grid_info(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return {"rowCount": int(state.get("rowCount", 0)), "columnCount": int(state.get("columnCount", 0))}

    def _grid_item(self, node: dict[str, Any], state: dict[str, Any], row: int, column: int) -> dict[str, Any]:
        rows, columns = int(state.get("rowCount", 0)), int(state.get("columnCount", 0))
        if not (0 <= row < rows and 0 <= column < columns):
            raise ValidationError(f"Cell ({row}, {column}) is outside the grid ({rows}x{columns})", field="row")
        for child in node["children"]:
            pos = child["patterns"].get("grid_item")
            if pos and pos.get("row") == row and pos.get("column") == column:
                info = self._info(child)
                info["row"], info["column"] = row, column
                info["value"] = self._text_of(child)
                return info
        raise ElementNotFoundError(f"{node['automationId']}[{row},{column}]")

    def _grid_item_info(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        parent = self._parents.get(node["id"])
        return {
            "row": state.get("row", 0),
            "column": state.get("column", 0),
            "rowSpan": state.get("rowSpan", 1),
            "columnSpan": state.get("columnSpan", 1),
            "containingGrid": parent["id"] if parent else None,
        }

    def _headers(self, node: dict[str, Any], ids: list[str]) -> list[dict[str, Any]]:
        by_automation_id = {n["automationId"]: n for n in self._walk(node)}
        return [self._info(by_automation_id[i]) for i in ids if i in by_automation_id]

    def _table_info(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        info = self._grid_info(node, node["patterns"].get("grid", {}))
        info["rowOrColumnMajor"] = state.get("rowOrColumnMajor", "RowMajor")
        info["columnHeaderCount"] = len(state.get("columnHeaders", []))
        info["rowHeaderCount"] = len(state.get("rowHeaders", []))
        return info

    def _table_column_headers(self, node: dict[str, Any], state: dict[str, Any]) -> list[dict[str, Any]]:
        return self._headers(node, list(state.get("columnHeaders", [])))

    def _table_row_headers(self, node: dict[str, Any], state: dict[str, Any]) -> list[dict[str, Any]]:
        return self._headers(node, list(state.get("rowHeaders", [])))

    def _focus_set(self, node: dict[str, Any], state: dict[str, Any]) -> None:
        self._focused_id = node["id"]

    def _view(self, state: dict[str, Any], view_id: int) -> dict[str, Any]:
        for view in state.get("views", []):
            if int(view["viewId"]) == view_id:
                return {"viewId": int(view["viewId"]), "name": str(view.get("name", ""))}
        raise ValidationError(f"View {view_id} is not supported by this element", field="viewId")

    def _multiple_view_get(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        return self._view(state, int(state.get("currentView", 0)))

    def _multiple_view_get_views(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        views = [self._view(state, int(v["viewId"])) for v in state.get("views", [])]
        return {"currentView": int(state.get("currentView", 0)), "views": views}

    def _multiple_view_get_view_name(self, node: dict[str, Any], state: dict[str, Any], view_id: int) -> dict[str, Any]:
        return self._view(state, view_id)

    def _multiple_view_set_view(self, node: dict[str, Any], state: dict[str, Any], view_id: int) -> dict[str, Any]:
        target = self._view(state, view_id)
        previous = int(state.get("currentView", 0))
        state["currentView"] = target["viewId"]
        return {"previousView": previous, "currentView": target["viewId"], "name": target["name"]}

    def _legacy_accessible_get_properties(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        flags = int(state.get("state", 0))
        return {
            "name": str(state.get("name", node["name"])),
            "value": str(state.get("value", "")),
            "description": str(state.get("description", "")),
            "role": str(state.get("role", "")),
            "help": str(state.get("help", "")),
            "keyboardShortcut": str(state.get("keyboardShortcut", "")),
            "defaultAction": str(state.get("defaultAction", "")),
            "childId": int(state.get("childId", 0)),
            "state": flags,
            "stateFlags": legacy_state_names(flags),
        }

    def _legacy_accessible_get_state(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        flags = int(state.get("state", 0))
        return {"state": flags, "stateFlags": legacy_state_names(flags)}

    def _legacy_accessible_do_default_action(self, node: dict[str, Any], state: dict[str, Any]) -> dict[str, Any]:
        action = str(state.get("defaultAction", ""))
        if not action:
            raise InvalidOperationError(f"Element {node['automationId'] or node['id']} has no default action")
        state["defaultActionCount"] = int(state.get("defaultActionCount", 0)) + 1
        if "invoke" in node["patterns"]:
            self._invoke_invoke(node, node["patterns"]["invoke"])
        return {"defaultAction": action}

    def _legacy_accessible_set_value(self, node: dict[str, Any], state: dict[str, Any], value: str) -> dict[str, Any]:
        if int(state.get("state", 0)) & (1 << LEGACY_STATE_FLAGS.index("ReadOnly")):
            raise InvalidOperationError(f"Element {node['automationId'] or node['id']} is read-only")
        previous = str(state.get("value", ""))
        state["value"] = str(value)
        return {"previousValue": previous, "value": state["value"]}

    def _legacy_accessible_select(self, node: dict[str, Any], state: dict[str, Any], flags_select: int) -> dict[str, Any]:
        flags = check_select_flags(flags_select)
        selected_bit = 1 << LEGACY_STATE_FLAGS.index("Selected")
        current = int(state.get("state", 0))
        if flags & SELFLAG_TAKEFOCUS:
            self._focused_id = node["id"]
        if flags & SELFLAG_TAKESELECTION:
            parent = self._parents.get(node["id"])
            for sibling in parent["children"] if parent else []:
                legacy = sibling["patterns"].get("legacy_accessible")
                if sibling is not node and legacy is not None:
                    legacy["state"] = int(legacy.get("state", 0)) & ~selected_bit
            current |= selected_bit
        if flags & (SELFLAG_ADDSELECTION | SELFLAG_EXTENDSELECTION):
            current |= selected_bit
        if flags & SELFLAG_REMOVESELECTION:
            current &= ~selected_bit
        state["state"] = current
        return {"flagsSelect": flags, "state": current, "stateFlags": legacy_state_names(current)}

    def close(self) -> None:
        self.search_cache.clear()
        self._by_id.clear()
        self._parents.clear()
        self._windows.clear()
