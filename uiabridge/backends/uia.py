"""Windows UI Automation backend built on pywinauto.

pywinauto and comtypes are imported when the backend is created, so the rest
of the package (and the memory backend) works on any platform.
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator

from loguru import logger

from uiabridge.backends.base import (
    PATTERNS,
    READ_ACTIONS,
    SEARCH_SCOPES,
    ElementLocator,
    ElementQuery,
    SearchCache,
    check_select_flags,
    legacy_state_names,
    query_matches,
)
from uiabridge.utils.exceptions import (
    AccessDeniedError,
    BackendError,
    ElementNotFoundError,
    InvalidOperationError,
    NotSupportedError,
    OperationTimeoutError,
    UiaBridgeError,
    ValidationError,
)

# Pattern id -> UIA pattern name understood by pywinauto's get_elem_interface.
_UIA_PATTERNS: dict[str, str] = {
    "invoke": "Invoke",
    "value": "Value",
    "toggle": "Toggle",
    "range": "RangeValue",
    "selection_item": "SelectionItem",
    "selection": "Selection",
    "text": "Text",
    "scroll": "Scroll",
    "scroll_item": "ScrollItem",
    "expand_collapse": "ExpandCollapse",
    "dock": "Dock",
    "transform": "Transform",
    "window": "Window",
    "grid": "Grid",
    "grid_item": "GridItem",
    "table": "Table",
    "multiple_view": "MultipleView",
    "legacy_accessible": "LegacyIAccessible",
}

# HRESULTs raised by UIA providers.
_E_ACCESSDENIED = 0x80070005
_UIA_E_ELEMENTNOTENABLED = 0x80040200
_UIA_E_ELEMENTNOTAVAILABLE = 0x80040201
_UIA_E_NOCLICKABLEPOINT = 0x80040202
_UIA_E_PROXYASSEMBLYNOTLOADED = 0x80040203
_UIA_E_NOTSUPPORTED = 0x80040204
_UIA_E_INVALIDOPERATION = 0x80131509
_UIA_E_TIMEOUT = 0x80131505

TOGGLE_STATES = ("Off", "On", "Indeterminate")
EXPAND_STATES = ("Collapsed", "Expanded", "PartiallyExpanded", "LeafNode")
WINDOW_STATES = ("Normal", "Maximized", "Minimized")
INTERACTION_STATES = ("Running", "Closing", "ReadyForUserInteraction", "BlockedByModalWindow", "NotResponding")
DOCK_POSITIONS = ("Top", "Left", "Bottom", "Right", "Fill", "None")
ROW_OR_COLUMN_MAJOR = ("RowMajor", "ColumnMajor", "Indeterminate")

# MSAA ROLE_SYSTEM_* values reported by LegacyIAccessible.
_LEGACY_ROLES = {
    0x09: "window",
    0x0A: "client",
    0x0C: "menu item",
    0x14: "grouping",
    0x18: "table",
    0x1D: "cell",
    0x1E: "link",
    0x21: "list",
    0x22: "list item",
    0x23: "outline",
    0x24: "outline item",
    0x25: "page tab",
    0x29: "static text",
    0x2A: "editable text",
    0x2B: "push button",
    0x2C: "check box",
    0x2D: "radio button",
    0x2E: "combo box",
    0x33: "slider",
}

# ScrollAmount enum
_LARGE_DECREMENT, _SMALL_DECREMENT, _NO_AMOUNT, _LARGE_INCREMENT, _SMALL_INCREMENT = range(5)
_NO_SCROLL = -1.0


def _choice_index(value: str, choices: tuple[str, ...], field: str) -> int:
    for index, choice in enumerate(choices):
        if choice.lower() == str(value).strip().lower():
            return index
    raise ValidationError(f"Invalid {field}: {value}. Valid values: {', '.join(choices)}", field=field)


def _name_at(choices: tuple[str, ...], index: int) -> str:
    return choices[index] if 0 <= index < len(choices) else str(index)


class UiaBackend:
    """UIA backend: every element is a pywinauto UIAWrapper."""

    name = "uia"

    def __init__(self) -> None:
        if sys.platform != "win32":
            raise BackendError("The uia backend is only available on Windows", backend=self.name)
        from comtypes import COMError
        from pywinauto import Desktop
        from pywinauto.controls.uiawrapper import UIAWrapper
        from pywinauto.findwindows import ElementNotFoundError as PwaElementNotFound
        from pywinauto.uia_defines import NoPatternInterfaceError, get_elem_interface
        from pywinauto.uia_element_info import UIAElementInfo

        self._desktop = Desktop(backend="uia")
        self._com_error = COMError
        self._wrapper = UIAWrapper
        self._element_info = UIAElementInfo
        self._not_found = PwaElementNotFound
        self._no_pattern = NoPatternInterfaceError
        self._get_interface = get_elem_interface
        self.search_cache = SearchCache()

    @contextmanager
    def _translate(self, what: str) -> Iterator[None]:
        """Map pywinauto/COM failures onto uiabridge error types."""
        try:
            yield
        except UiaBridgeError:
            raise
        except self._no_pattern as exc:
            raise NotSupportedError(f"{what}: pattern not supported by element") from exc
        except self._not_found as exc:
            raise ElementNotFoundError(what) from exc
        except self._com_error as exc:
            hresult = (getattr(exc, "hresult", 0) or 0) & 0xFFFFFFFF
            if hresult == _E_ACCESSDENIED:
                raise AccessDeniedError(f"{what}: access denied") from exc
            if hresult in (_UIA_E_ELEMENTNOTENABLED, _UIA_E_INVALIDOPERATION, _UIA_E_NOCLICKABLEPOINT):
                raise InvalidOperationError(f"{what}: {exc}") from exc
            if hresult == _UIA_E_ELEMENTNOTAVAILABLE:
                raise ElementNotFoundError(what, f"Element is no longer available: {what}") from exc
            if hresult in (_UIA_E_NOTSUPPORTED, _UIA_E_PROXYASSEMBLYNOTLOADED):
                raise NotSupportedError(f"{what}: {exc}") from exc
            if hresult == _UIA_E_TIMEOUT:
                raise BackendError(f"{what}: provider timed out", backend=self.name) from exc
            raise BackendError(f"{what}: {exc}", backend=self.name) from exc

    # -- element helpers -------------------------------------------------

    def _wrap(self, com_element: Any) -> Any:
        return self._wrapper(self._element_info(com_element))

    @staticmethod
    def _runtime_id(element: Any) -> str:
        rid = element.element_info.runtime_id
        return ".".join(str(part) for part in rid) if rid else ""

    def _windows(self, window_title: str, process_id: int) -> list[Any]:
        windows = self._desktop.windows(visible_only=False)
        if window_title:
            needle = window_title.lower()
            windows = [w for w in windows if needle in (w.window_text() or "").lower()]
        if process_id:
            windows = [w for w in windows if w.element_info.process_id == process_id]
        if not windows and (window_title or process_id):
            target = window_title or f"process {process_id}"
            raise ElementNotFoundError(target, f"Window not found: {target}")
        return windows

    def _resolve(self, locator: ElementLocator) -> Any:
        roots = self._windows(locator.window_title, locator.process_id)
        element_id = locator.element_id.strip()
        if not element_id:
            if locator.window_title or locator.process_id:
                return roots[0]
            raise ElementNotFoundError("<empty>", "Element not found: no elementId or window given")
        for root in roots:
            for element in [root, *root.descendants()]:
                info = element.element_info
                if info.automation_id == element_id or self._runtime_id(element) == element_id:
                    return element
        for root in roots:
            for element in [root, *root.descendants()]:
                if element.element_info.name == element_id:
                    return element
        raise ElementNotFoundError(locator.describe())

    def _supported_patterns(self, element: Any) -> list[str]:
        supported = []
        for pattern, uia_name in _UIA_PATTERNS.items():
            try:
                self._get_interface(element.element_info.element, uia_name)
            except (self._no_pattern, self._com_error):
                continue
            supported.append(pattern)
        return supported

    def _info(self, element: Any, *, with_patterns: bool = True) -> dict[str, Any]:
        info = element.element_info
        rect = info.rectangle
        return {
            "elementId": info.automation_id or self._runtime_id(element) or info.name,
            "automationId": info.automation_id,
            "name": info.name,
            "controlType": info.control_type,
            "className": info.class_name,
            "processId": info.process_id,
            "isEnabled": bool(info.enabled),
            "isVisible": bool(info.visible),
            "hasKeyboardFocus": bool(element.has_keyboard_focus()),
            "boundingRectangle": {
                "x": rect.left,
                "y": rect.top,
                "width": rect.width(),
                "height": rect.height(),
            },
            "supportedPatterns": self._supported_patterns(element) if with_patterns else [],
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
        with self._translate("find elements"):
            if query.window_title or query.process_id:
                roots = self._windows(query.window_title, query.process_id)
                if scope == "element":
                    candidates = roots
                elif scope == "children":
                    candidates = [c for r in roots for c in r.children()]
                elif scope == "subtree":
                    candidates = [e for r in roots for e in (r, *r.descendants())]
                else:
                    candidates = [e for r in roots for e in r.descendants()]
            else:
                windows = self._desktop.windows(visible_only=False)
                if scope in ("element", "children"):
                    candidates = windows if scope == "children" else []
                else:
                    candidates = [e for w in windows for e in (w, *w.descendants())]

            results: list[dict[str, Any]] = []
            for element in candidates:
                info = self._info(element, with_patterns=bool(query.required_pattern))
                if not query_matches(info, query):
                    continue
                if not query.required_pattern:
                    info["supportedPatterns"] = self._supported_patterns(element)
                results.append(info)
                if query.max_results > 0 and len(results) >= query.max_results:
                    break
            return results

    def get_element_info(self, locator: ElementLocator) -> dict[str, Any]:
        with self._translate(locator.describe()):
            element = self._resolve(locator)
            info = self._info(element)
            parent = element.parent()
            info["parentId"] = self._info(parent, with_patterns=False)["elementId"] if parent else None
            info["childCount"] = len(element.children())
            return info

    def get_children(self, locator: ElementLocator) -> list[dict[str, Any]]:
        with self._translate(locator.describe()):
            return [self._info(child) for child in self._resolve(locator).children()]

    def get_tree(self, locator: ElementLocator | None, max_depth: int) -> dict[str, Any]:
        def build(element: Any, depth: int) -> dict[str, Any]:
            entry = self._info(element, with_patterns=False)
            entry["children"] = [build(c, depth + 1) for c in element.children()] if depth < max_depth else []
            return entry

        with self._translate("element tree"):
            if locator is None or not (locator.element_id or locator.window_title or locator.process_id):
                windows = self._desktop.windows()
                return {
                    "elementId": "desktop",
                    "name": "Desktop",
                    "controlType": "Pane",
                    "children": [build(w, 1) for w in windows] if max_depth > 0 else [],
                }
            return build(self._resolve(locator), 0)

    def get_desktop_windows(self, include_invisible: bool = False) -> list[dict[str, Any]]:
        with self._translate("desktop windows"):
            result = []
            for window in self._desktop.windows(visible_only=not include_invisible):
                info = self._info(window, with_patterns=False)
                info["title"] = window.window_text()
                try:
                    iface = self._get_interface(window.element_info.element, "Window")
                    info["windowState"] = _name_at(WINDOW_STATES, iface.CurrentWindowVisualState)
                except (self._no_pattern, self._com_error):
                    info["windowState"] = "Unknown"
                result.append(info)
            return result

    # -- patterns --------------------------------------------------------

    def call_pattern(
        self,
        locator: ElementLocator,
        pattern: str,
        action: str,
        arguments: dict[str, Any] | None = None,
    ) -> Any:
        if pattern not in PATTERNS:
            raise NotSupportedError(f"Unknown pattern: {pattern}", pattern=pattern)
        handler = getattr(self, f"_{pattern}_{action}", None)
        if handler is None:
            raise NotSupportedError(f"The {pattern} pattern does not support '{action}'", pattern=pattern)
        what = f"{pattern}.{action} on {locator.describe()}"
        if action not in READ_ACTIONS:
            self.search_cache.clear()
        with self._translate(what):
            element = self._resolve(locator)
            iface = None
            if pattern in _UIA_PATTERNS:
                iface = self._get_interface(element.element_info.element, _UIA_PATTERNS[pattern])
            logger.debug("UIA call {}", what)
            return handler(element, iface, **(arguments or {}))

    def _invoke_invoke(self, element: Any, iface: Any) -> None:
        iface.Invoke()

    def _value_get(self, element: Any, iface: Any) -> dict[str, Any]:
        return {"value": iface.CurrentValue or "", "isReadOnly": bool(iface.CurrentIsReadOnly)}

    def _value_is_read_only(self, element: Any, iface: Any) -> bool:
        return bool(iface.CurrentIsReadOnly)

    def _value_set(self, element: Any, iface: Any, value: str) -> None:
        if iface.CurrentIsReadOnly:
            raise InvalidOperationError("Element is read-only")
        iface.SetValue(str(value))

    def _toggle_toggle(self, element: Any, iface: Any) -> dict[str, Any]:
        iface.Toggle()
        return {"state": _name_at(TOGGLE_STATES, iface.CurrentToggleState)}

    def _toggle_get_state(self, element: Any, iface: Any) -> dict[str, Any]:
        return {"state": _name_at(TOGGLE_STATES, iface.CurrentToggleState)}

    def _toggle_set_state(self, element: Any, iface: Any, state_value: str) -> dict[str, Any]:
        target = _choice_index(state_value, TOGGLE_STATES, "toggleState")
        for _ in range(len(TOGGLE_STATES)):
            if iface.CurrentToggleState == target:
                break
            iface.Toggle()
        if iface.CurrentToggleState != target:
            raise InvalidOperationError(f"Element cannot reach toggle state {TOGGLE_STATES[target]}")
        return {"state": TOGGLE_STATES[target]}

    def _range_get(self, element: Any, iface: Any) -> dict[str, Any]:
        return {
            "value": iface.CurrentValue,
            "minimum": iface.CurrentMinimum,
            "maximum": iface.CurrentMaximum,
            "smallChange": iface.CurrentSmallChange,
            "largeChange": iface.CurrentLargeChange,
            "isReadOnly": bool(iface.CurrentIsReadOnly),
        }

    def _range_set(self, element: Any, iface: Any, value: float) -> dict[str, Any]:
        minimum, maximum = iface.CurrentMinimum, iface.CurrentMaximum
        if not minimum <= value <= maximum:
            raise ValidationError(f"Value {value} is out of range [{minimum}, {maximum}]", field="value")
        iface.SetValue(float(value))
        return self._range_get(element, iface)

    def _selection_item_select(self, element: Any, iface: Any) -> None:
        iface.Select()

    def _selection_item_add(self, element: Any, iface: Any) -> None:
        iface.AddToSelection()

    def _selection_item_remove(self, element: Any, iface: Any) -> None:
        iface.RemoveFromSelection()

    def _selection_item_is_selected(self, element: Any, iface: Any) -> bool:
        return bool(iface.CurrentIsSelected)

    def _selected_elements(self, iface: Any) -> list[Any]:
        array = iface.GetCurrentSelection()
        return [self._wrap(array.GetElement(i)) for i in range(array.Length)]

    def _selection_get_selection(self, element: Any, iface: Any) -> dict[str, Any]:
        return {
            "canSelectMultiple": bool(iface.CurrentCanSelectMultiple),
            "isSelectionRequired": bool(iface.CurrentIsSelectionRequired),
            "selectedItems": [self._info(e, with_patterns=False) for e in self._selected_elements(iface)],
        }

    def _selection_clear(self, element: Any, iface: Any) -> None:
        if iface.CurrentIsSelectionRequired:
            raise InvalidOperationError("Container requires at least one selected item")
        for selected in self._selected_elements(iface):
            self._get_interface(selected.element_info.element, "SelectionItem").RemoveFromSelection()

    def _document_text(self, iface: Any) -> str:
        return iface.DocumentRange.GetText(-1) or ""

    def _text_get_text(self, element: Any, iface: Any, max_length: int = -1) -> dict[str, Any]:
        text = self._document_text(iface)
        return {"text": text[:max_length] if max_length >= 0 else text, "length": len(text)}

    def _set_via_value(self, element: Any, text: str) -> None:
        value = self._get_interface(element.element_info.element, "Value")
        if value.CurrentIsReadOnly:
            raise InvalidOperationError("Element is read-only")
        value.SetValue(text)

    def _text_set_text(self, element: Any, iface: Any, text: str) -> None:
        self._set_via_value(element, text)

    def _text_append(self, element: Any, iface: Any, text: str) -> dict[str, Any]:
        combined = self._document_text(iface) + text
        self._set_via_value(element, combined)
        return {"length": len(combined)}

    def _text_select(self, element: Any, iface: Any, start: int, length: int) -> dict[str, Any]:
        text = self._document_text(iface)
        if start < 0 or length < 0 or start + length > len(text):
            raise ValidationError(
                f"Selection {start}+{length} is outside the text (length {len(text)})",
                field="startIndex",
            )
        text_range = iface.DocumentRange.Clone()
        # endpoints: 0 = Start, 1 = End; unit 0 = Character
        text_range.MoveEndpointByUnit(0, 0, start)
        text_range.MoveEndpointByUnit(1, 0, start + length - len(text))
        text_range.Select()
        return {"selectedText": text[start:start + length], "startIndex": start, "endIndex": start + length}

    def _text_find(
        self,
        element: Any,
        iface: Any,
        text: str,
        backward: bool = False,
        ignore_case: bool = True,
    ) -> dict[str, Any]:
        original = self._document_text(iface)
        haystack, needle = (original.lower(), text.lower()) if ignore_case else (original, text)
        index = haystack.rfind(needle) if backward else haystack.find(needle)
        if index < 0:
            return {"found": False, "startIndex": -1, "text": ""}
        return {"found": True, "startIndex": index, "text": original[index:index + len(text)]}

    def _text_get_selection(self, element: Any, iface: Any) -> list[dict[str, Any]]:
        document = self._document_text(iface)
        ranges = iface.GetSelection()
        result = []
        for i in range(ranges.Length):
            selected = ranges.GetElement(i).GetText(-1) or ""
            start = document.find(selected) if selected else -1
            result.append({"text": selected, "startIndex": start, "endIndex": start + len(selected) if start >= 0 else -1})
        return result

    def _scroll_get_info(self, element: Any, iface: Any) -> dict[str, Any]:
        return {
            "horizontalPercent": iface.CurrentHorizontalScrollPercent,
            "verticalPercent": iface.CurrentVerticalScrollPercent,
            "horizontalViewSize": iface.CurrentHorizontalViewSize,
            "verticalViewSize": iface.CurrentVerticalViewSize,
            "horizontallyScrollable": bool(iface.CurrentHorizontallyScrollable),
            "verticallyScrollable": bool(iface.CurrentVerticallyScrollable),
        }

    def _scroll_scroll(self, element: Any, iface: Any, direction: str, amount: float = 1.0) -> dict[str, Any]:
        direction = direction.strip().lower()
        steps = {
            "up": (_NO_AMOUNT, _SMALL_DECREMENT),
            "down": (_NO_AMOUNT, _SMALL_INCREMENT),
            "left": (_SMALL_DECREMENT, _NO_AMOUNT),
            "right": (_SMALL_INCREMENT, _NO_AMOUNT),
            "pageup": (_NO_AMOUNT, _LARGE_DECREMENT),
            "pagedown": (_NO_AMOUNT, _LARGE_INCREMENT),
        }
        if direction not in steps:
            raise ValidationError(f"Invalid direction: {direction}. Valid values: {', '.join(steps)}", field="direction")
        horizontal, vertical = steps[direction]
        for _ in range(max(1, int(round(amount)))):
            iface.Scroll(horizontal, vertical)
        return self._scroll_get_info(element, iface)

    def _scroll_set_percent(self, element: Any, iface: Any, horizontal: float = -1, vertical: float = -1) -> dict[str, Any]:
        for axis, value in (("horizontal", horizontal), ("vertical", vertical)):
            if value != -1 and not 0 <= value <= 100:
                raise ValidationError(f"{axis}Percent must be between 0 and 100 (or -1)", field=f"{axis}Percent")
        iface.SetScrollPercent(
            _NO_SCROLL if horizontal == -1 else float(horizontal),
            _NO_SCROLL if vertical == -1 else float(vertical),
        )
        return self._scroll_get_info(element, iface)

    def _scroll_item_scroll_into_view(self, element: Any, iface: Any) -> None:
        iface.ScrollIntoView()

    def _expand_collapse_get_state(self, element: Any, iface: Any) -> dict[str, Any]:
        return {"state": _name_at(EXPAND_STATES, iface.CurrentExpandCollapseState)}

    def _expand_collapse_set(self, element: Any, iface: Any, action: str) -> dict[str, Any]:
        action = action.strip().lower()
        current = iface.CurrentExpandCollapseState
        if _name_at(EXPAND_STATES, current) == "LeafNode":
            raise InvalidOperationError("Element is a leaf node and cannot be expanded or collapsed")
        if action == "toggle":
            action = "expand" if current == 0 else "collapse"
        if action == "expand":
            iface.Expand()
        elif action == "collapse":
            iface.Collapse()
        else:
            raise ValidationError(f"Invalid action: {action}. Valid values: expand, collapse, toggle", field="action")
        return self._expand_collapse_get_state(element, iface)

    def _dock_get(self, element: Any, iface: Any) -> dict[str, Any]:
        return {"position": _name_at(DOCK_POSITIONS, iface.CurrentDockPosition)}

    def _dock_set(self, element: Any, iface: Any, position: str) -> dict[str, Any]:
        iface.SetDockPosition(_choice_index(position, DOCK_POSITIONS, "dockPosition"))
        return self._dock_get(element, iface)

    def _transform_get_info(self, element: Any, iface: Any) -> dict[str, Any]:
        rect = element.element_info.rectangle
        return {
            "canMove": bool(iface.CurrentCanMove),
            "canResize": bool(iface.CurrentCanResize),
            "canRotate": bool(iface.CurrentCanRotate),
            "boundingRectangle": {"x": rect.left, "y": rect.top, "width": rect.width(), "height": rect.height()},
        }

    def _transform_move(self, element: Any, iface: Any, x: float, y: float) -> dict[str, Any]:
        if not iface.CurrentCanMove:
            raise InvalidOperationError("Element cannot be moved")
        iface.Move(float(x), float(y))
        return self._transform_get_info(element, iface)

    def _transform_resize(self, element: Any, iface: Any, width: float, height: float) -> dict[str, Any]:
        if not iface.CurrentCanResize:
            raise InvalidOperationError("Element cannot be resized")
        if width <= 0 or height <= 0:
            raise ValidationError("width and height must be positive", field="width")
        iface.Resize(float(width), float(height))
        return self._transform_get_info(element, iface)

    def _transform_rotate(self, element: Any, iface: Any, degrees: float) -> dict[str, Any]:
        if not iface.CurrentCanRotate:
            raise InvalidOperationError("Element cannot be rotated")
        iface.Rotate(float(degrees))
        return self._transform_get_info(element, iface)

    def _window_get_state(self, element: Any, iface: Any) -> dict[str, Any]:
        return {
            "state": _name_at(WINDOW_STATES, iface.CurrentWindowVisualState),
            "interactionState": _name_at(INTERACTION_STATES, iface.CurrentWindowInteractionState),
            "canMaximize": bool(iface.CurrentCanMaximize),
            "canMinimize": bool(iface.CurrentCanMinimize),
            "isModal": bool(iface.CurrentIsModal),
            "isTopmost": bool(iface.CurrentIsTopmost),
        }

    def _window_get_info(self, element: Any, iface: Any) -> dict[str, Any]:
        info = self._info(element)
        info["title"] = element.window_text()
        info.update(self._window_get_state(element, iface))
        return info

    def _window_set_state(self, element: Any, iface: Any, state_value: str) -> dict[str, Any]:
        target = _choice_index(state_value, WINDOW_STATES, "windowState")
        if target == 1 and not iface.CurrentCanMaximize:
            raise InvalidOperationError("Window cannot be maximized")
        if target == 2 and not iface.CurrentCanMinimize:
            raise InvalidOperationError("Window cannot be minimized")
        iface.SetWindowVisualState(target)
        return {"state": WINDOW_STATES[target]}

    def _window_close(self, element: Any, iface: Any) -> None:
        iface.Close()

    def _window_set_focus(self, element: Any, iface: Any) -> None:
        element.set_focus()

    def _window_wait_for_state(self, element: Any, iface: Any, state_value: str, timeout_seconds: float) -> dict[str, Any]:
        target = _choice_index(state_value, WINDOW_STATES, "windowState")
        deadline = time.monotonic() + timeout_seconds
        while iface.CurrentWindowVisualState != target:
            if time.monotonic() >= deadline:
                raise OperationTimeoutError("WaitForWindowState", timeout_seconds)
            time.sleep(0.1)
        return {"state": WINDOW_STATES[target]}

    def _window_wait_for_input_idle(self, element: Any, iface: Any, timeout_ms: int) -> dict[str, Any]:
        return {"idle": bool(iface.WaitForInputIdle(int(timeout_ms)))}

    def _grid_info(self, element: Any, iface: Any) -> dict[str, Any]:
        return {"rowCount": iface.CurrentRowCount, "columnCount": iface.CurrentColumnCount}

    def _grid_item(self, element: Any, iface: Any, row: int, column: int) -> dict[str, Any]:
        rows, columns = iface.CurrentRowCount, iface.CurrentColumnCount
        if not (0 <= row < rows and 0 <= column < columns):
            raise ValidationError(f"Cell ({row}, {column}) is outside the grid ({rows}x{columns})", field="row")
        cell = self._wrap(iface.GetItem(row, column))
        info = self._info(cell)
        info["row"], info["column"] = row, column
        info["value"] = cell.window_text()
        return info

    def _grid_item_info(self, element: Any, iface: Any) -> dict[str, Any]:
        grid = iface.CurrentContainingGrid
        return {
            "row": iface.CurrentRow,
            "column": iface.CurrentColumn,
            "rowSpan": iface.CurrentRowSpan,
            "columnSpan": iface.CurrentColumnSpan,
            "containingGrid": self._info(self._wrap(grid), with_patterns=False)["elementId"] if grid else None,
        }

    def _table_info(self, element: Any, iface: Any) -> dict[str, Any]:
        grid = self._get_interface(element.element_info.element, "Grid")
        info = self._grid_info(element, grid)
        info["rowOrColumnMajor"] = _name_at(ROW_OR_COLUMN_MAJOR, iface.CurrentRowOrColumnMajor)
        info["columnHeaderCount"] = iface.GetCurrentColumnHeaders().Length
        info["rowHeaderCount"] = iface.GetCurrentRowHeaders().Length
        return info

    def _headers(self, array: Any) -> list[dict[str, Any]]:
        return [self._info(self._wrap(array.GetElement(i)), with_patterns=False) for i in range(array.Length)]

    def _table_column_headers(self, element: Any, iface: Any) -> list[dict[str, Any]]:
        return self._headers(iface.GetCurrentColumnHeaders())

    def _table_row_headers(self, element: Any, iface: Any) -> list[dict[str, Any]]:
        return self._headers(iface.GetCurrentRowHeaders())

    def _focus_set(self, element: Any, iface: Any) -> None:
        element.set_focus()

    def _view(self, iface: Any, view_id: int) -> dict[str, Any]:
        if view_id not in tuple(iface.GetCurrentSupportedViews() or ()):
            raise ValidationError(f"View {view_id} is not supported by this element", field="viewId")
        return {"viewId": view_id, "name": iface.GetViewName(view_id) or ""}

    def _multiple_view_get(self, element: Any, iface: Any) -> dict[str, Any]:
        return self._view(iface, int(iface.CurrentCurrentView))

    def _multiple_view_get_views(self, element: Any, iface: Any) -> dict[str, Any]:
        views = [self._view(iface, int(v)) for v in iface.GetCurrentSupportedViews() or ()]
        return {"currentView": int(iface.CurrentCurrentView), "views": views}

    def _multiple_view_get_view_name(self, element: Any, iface: Any, view_id: int) -> dict[str, Any]:
        return self._view(iface, view_id)

    def _multiple_view_set_view(self, element: Any, iface: Any, view_id: int) -> dict[str, Any]:
        target = self._view(iface, view_id)
        previous = int(iface.CurrentCurrentView)
        iface.SetCurrentView(view_id)
        return {"previousView": previous, "currentView": int(iface.CurrentCurrentView), "name": target["name"]}

    def _legacy_accessible_get_properties(self, element: Any, iface: Any) -> dict[str, Any]:
        state = int(iface.CurrentState or 0)
        role = int(iface.CurrentRole or 0)
        return {
            "name": iface.CurrentName or "",
            "value": iface.CurrentValue or "",
            "description": iface.CurrentDescription or "",
            "role": _LEGACY_ROLES.get(role, f"role {role}"),
            "help": iface.CurrentHelp or "",
            "keyboardShortcut": iface.CurrentKeyboardShortcut or "",
            "defaultAction": iface.CurrentDefaultAction or "",
            "childId": int(iface.CurrentChildId or 0),
            "state": state,
            "stateFlags": legacy_state_names(state),
        }

    def _legacy_accessible_get_state(self, element: Any, iface: Any) -> dict[str, Any]:
        state = int(iface.CurrentState or 0)
        return {"state": state, "stateFlags": legacy_state_names(state)}

    def _legacy_accessible_do_default_action(self, element: Any, iface: Any) -> dict[str, Any]:
        action = iface.CurrentDefaultAction or ""
        if not action:
            raise InvalidOperationError("Element has no default action")
        iface.DoDefaultAction()
        return {"defaultAction": action}

    def _legacy_accessible_set_value(self, element: Any, iface: Any, value: str) -> dict[str, Any]:
        previous = iface.CurrentValue or ""
        iface.SetValue(str(value))
        return {"previousValue": previous, "value": iface.CurrentValue or ""}

    def _legacy_accessible_select(self, element: Any, iface: Any, flags_select: int) -> dict[str, Any]:
        iface.Select(check_select_flags(flags_select))
        state = int(iface.CurrentState or 0)
        return {"flagsSelect": flags_select, "state": state, "stateFlags": legacy_state_names(state)}

    def close(self) -> None:
        self.search_cache.clear()
        self._desktop = None
