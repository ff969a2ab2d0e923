"""Invoke, value, toggle, range and focus operations."""

from __future__ import annotations

from typing import Any

from uiabridge.operations.base import ElementParams, PatternOperation, RequiredText


class InvokeElement(PatternOperation):
    name = "InvokeElement"
    aliases = ("Invoke",)
    description = "Invoke an element (button click, menu item, hyperlink)"
    pattern = "invoke"
    action = "invoke"
    message = "Element invoked successfully"


class SetValueParams(ElementParams):
    value: str


class SetElementValue(PatternOperation):
    name = "SetElementValue"
    aliases = ("setvalue", "value")
    description = "Set the value of an editable element"
    Params = SetValueParams
    pattern = "value"
    action = "set"
    message = "Value set successfully"

    def arguments(self, params: SetValueParams) -> dict[str, Any]:
        return {"value": params.value}


class GetElementValue(PatternOperation):
    name = "GetElementValue"
    aliases = ("getvalue", "get_value")
    description = "Read the value of an element"
    pattern = "value"
    action = "get"


class IsReadOnly(PatternOperation):
    name = "IsReadOnly"
    description = "Whether the element's value is read-only"
    pattern = "value"
    action = "is_read_only"


class ToggleElement(PatternOperation):
    name = "ToggleElement"
    aliases = ("toggle",)
    description = "Cycle a check box or toggle button to its next state"
    pattern = "toggle"
    action = "toggle"


class GetToggleState(PatternOperation):
    name = "GetToggleState"
    description = "Read the toggle state (On, Off, Indeterminate)"
    pattern = "toggle"
    action = "get_state"


class SetToggleStateParams(ElementParams):
    toggle_state: RequiredText


class SetToggleState(PatternOperation):
    name = "SetToggleState"
    description = "Toggle until the element reaches the requested state"
    Params = SetToggleStateParams
    pattern = "toggle"
    action = "set_state"

    def arguments(self, params: SetToggleStateParams) -> dict[str, Any]:
        return {"state_value": params.toggle_state}


class SetRangeValueParams(ElementParams):
    value: float


class SetRangeValue(PatternOperation):
    name = "SetRangeValue"
    description = "Set a slider, spinner or progress value"
    Params = SetRangeValueParams
    pattern = "range"
    action = "set"

    def arguments(self, params: SetRangeValueParams) -> dict[str, Any]:
        return {"value": params.value}


class GetRangeValue(PatternOperation):
    name = "GetRangeValue"
    description = "Read the value, bounds and step sizes of a range element"
    pattern = "range"
    action = "get"


class SetFocus(PatternOperation):
    name = "SetFocus"
    aliases = ("focus",)
    description = "Move keyboard focus to an element"
    pattern = "focus"
    action = "set"
    message = "Focus set successfully"
