"""Built-in desktop used by the memory backend when no fixture is given."""

from __future__ import annotations

import copy
from typing import Any


def _node(control_type: str, automation_id: str, name: str, **extra: Any) -> dict[str, Any]:
    node: dict[str, Any] = {"controlType": control_type, "automationId": automation_id, "name": name}
    node.update(extra)
    return node


def _cell(row: int, column: int, text: str) -> dict[str, Any]:
    return _node(
        "DataItem",
        f"Cell_{row}_{column}",
        text,
        patterns={"grid_item": {"row": row, "column": column}, "value": {"value": text, "isReadOnly": True}},
    )


_SAMPLE: dict[str, Any] = {
    "windows": [
        _node(
            "Window",
            "MainWindow",
            "Sample App",
            className="SampleAppWindow",
            processId=4242,
            bounds={"x": 100, "y": 100, "width": 800, "height": 600},
            patterns={
                "window": {"state": "Normal", "canMaximize": True, "canMinimize": True, "isModal": False},
                "transform": {"canMove": True, "canResize": True, "canRotate": False},
            },
            children=[
                _node("Button", "OkButton", "OK", patterns={"invoke": {}}),
                _node("Button", "DisabledButton", "Apply", isEnabled=False, patterns={"invoke": {}}),
                _node(
                    "Edit",
                    "NameBox",
                    "Name",
                    isKeyboardFocusable=True,
                    patterns={"value": {"value": "", "isReadOnly": False}, "text": {}},
                ),
                _node("Edit", "SerialBox", "Serial", patterns={"value": {"value": "X-1000", "isReadOnly": True}}),
                _node("CheckBox", "DarkMode", "Dark mode", patterns={"toggle": {"state": "Off"}}),
                _node(
                    "Slider",
                    "Volume",
                    "Volume",
                    patterns={"range": {"value": 30, "minimum": 0, "maximum": 100, "smallChange": 1, "largeChange": 10}},
                ),
                _node(
                    "List",
                    "Fruits",
                    "Fruits",
                    patterns={"selection": {"canSelectMultiple": False, "isSelectionRequired": False}},
                    children=[
                        _node("ListItem", "Apple", "Apple", patterns={"selection_item": {"isSelected": True}}),
                        _node("ListItem", "Banana", "Banana", patterns={"selection_item": {"isSelected": False}}),
                        _node("ListItem", "Cherry", "Cherry", patterns={"selection_item": {"isSelected": False}}),
                    ],
                ),
                _node(
                    "List",
                    "Toppings",
                    "Toppings",
                    patterns={"selection": {"canSelectMultiple": True, "isSelectionRequired": False}},
                    children=[
                        _node("ListItem", "Cheese", "Cheese", patterns={"selection_item": {"isSelected": False}}),
                        _node("ListItem", "Olives", "Olives", patterns={"selection_item": {"isSelected": False}}),
                    ],
                ),
                _node("ComboBox", "Units", "Units", patterns={"expand_collapse": {"state": "Collapsed"}}),
                _node("TreeItem", "LeafNode", "Leaf", patterns={"expand_collapse": {"state": "LeafNode"}}),
                _node(
                    "Pane",
                    "ScrollArea",
                    "Scroll area",
                    patterns={
                        "scroll": {
                            "horizontalPercent": 0,
                            "verticalPercent": 0,
                            "horizontalViewSize": 50,
                            "verticalViewSize": 25,
                            "horizontallyScrollable": True,
                            "verticallyScrollable": True,
                        }
                    },
                    children=[_node("Text", "FarItem", "Far away", patterns={"scroll_item": {}})],
                ),
                _node(
                    "Document",
                    "Notes",
                    "Notes",
                    patterns={"text": {"text": "Hello world. Hello again.", "isReadOnly": False}},
                ),
                _node("Pane", "ToolPanel", "Tools", patterns={"dock": {"position": "None"}}),
                _node(
                    "Tree",
                    "Files",
                    "Files",
                    patterns={
                        "multiple_view": {
                            "currentView": 0,
                            "views": [
                                {"viewId": 0, "name": "Details"},
                                {"viewId": 1, "name": "Icons"},
                                {"viewId": 2, "name": "List"},
                            ],
                        }
                    },
                ),
                _node(
                    "Hyperlink",
                    "HelpLink",
                    "Help",
                    patterns={
                        "invoke": {},
                        "legacy_accessible": {
                            "role": "link",
                            "defaultAction": "Jump",
                            "description": "Open the help page",
                            "keyboardShortcut": "Alt+H",
                            "value": "https://help.example.invalid/",
                            "state": 0x00500000,
                        },
                    },
                ),
                _node(
                    "Text",
                    "StatusLabel",
                    "Ready",
                    patterns={"legacy_accessible": {"role": "static text", "state": 0x00000040, "value": "Ready"}},
                ),
                _node(
                    "DataGrid",
                    "Scores",
                    "Scores",
                    patterns={
                        "grid": {"rowCount": 2, "columnCount": 2},
                        "table": {"rowOrColumnMajor": "RowMajor", "columnHeaders": ["HeaderName", "HeaderScore"], "rowHeaders": []},
                    },
                    children=[
                        _node("HeaderItem", "HeaderName", "Name"),
                        _node("HeaderItem", "HeaderScore", "Score"),
                        _cell(0, 0, "Ada"),
                        _cell(0, 1, "97"),
                        _cell(1, 0, "Linus"),
                        _cell(1, 1, "88"),
                    ],
                ),
            ],
        ),
        _node(
            "Window",
            "FaultWindow",
            "Fault Lab",
            processId=4343,
            patterns={"window": {"state": "Normal"}},
            children=[
                _node("Button", "HangButton", "Hang", fault="hang", patterns={"invoke": {}}),
                _node("Button", "CrashButton", "Crash", fault="crash", patterns={"invoke": {}}),
                _node("Button", "ErrorButton", "Error", fault="error", patterns={"invoke": {}}),
                _node("Button", "DeniedButton", "Denied", fault="access_denied", patterns={"invoke": {}}),
                _node("Button", "SpawnHangButton", "Spawn and hang", fault="hang_tree", patterns={"invoke": {}}),
            ],
        ),
        _node(
            "Window",
            "HiddenTool",
            "Hidden Tool",
            processId=4444,
            isVisible=False,
            patterns={"window": {"state": "Minimized"}},
        ),
    ]
}


def sample_desktop() -> dict[str, Any]:
    """Return a fresh copy of the built-in desktop tree."""
    return copy.deepcopy(_SAMPLE)
