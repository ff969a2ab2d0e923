"""LegacyIAccessible (MSAA) operations and control type checks."""

from __future__ import annotations

from typing import Any

from uiabridge.operations.base import (
    ElementParams,
    Operation,
    OperationContext,
    OperationResult,
    PatternOperation,
    call_backend,
)


class GetLegacyProperties(PatternOperation):
    name = "GetLegacyProperties"
    description = "Read the MSAA name, value, role, state and default action of an element"
    pattern = "legacy_accessible"
    action = "get_properties"


class GetLegacyState(PatternOperation):
    name = "GetLegacyState"
    description = "Read the MSAA state bits of an element, with their names"
    pattern = "legacy_accessible"
    action = "get_state"


class DoLegacyDefaultAction(PatternOperation):
    name = "DoLegacyDefaultAction"
    description = "Perform the element's MSAA default action"
    pattern = "legacy_accessible"
    action = "do_default_action"


class SetLegacyValueParams(ElementParams):
    value: str


class SetLegacyValue(PatternOperation):
    name = "SetLegacyValue"
    description = "Set the MSAA value of an element"
    Params = SetLegacyValueParams
    pattern = "legacy_accessible"
    action = "set_value"

    def arguments(self, params: SetLegacyValueParams) -> dict[str, Any]:
        return {"value": params.value}


class SelectLegacyItemParams(ElementParams):
    flags_select: int


class SelectLegacyItem(PatternOperation):
    name = "SelectLegacyItem"
    description = "Select or focus an element with MSAA SELFLAG values"
    Params = SelectLegacyItemParams
    pattern = "legacy_accessible"
    action = "select"

    def arguments(self, params: SelectLegacyItemParams) -> dict[str, Any]:
        return {"flags_select": params.flags_select}


# Control type -> (required patterns, optional patterns), from the UIA control type guidelines.
CONTROL_TYPE_PATTERNS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "button": (("invoke",), ("expand_collapse", "toggle")),
    "checkbox": (("toggle",), ()),
    "combobox": (("expand_collapse",), ("value", "selection")),
    "edit": ((), ("value", "text", "range")),
    "list": ((), ("selection", "grid", "multiple_view", "scroll")),
    "listitem": (("selection_item",), ("expand_collapse", "grid_item", "invoke", "scroll_item", "toggle", "value")),
    "menu": ((), ("expand_collapse",)),
    "menuitem": ((), ("expand_collapse", "invoke", "toggle", "selection_item")),
    "radiobutton": (("selection_item",), ("toggle",)),
    "scrollbar": (("range",), ()),
    "slider": (("range",), ("selection", "value")),
    "tabitem": (("selection_item",), ("invoke",)),
    "table": (("grid", "table"), ("selection",)),
    "tree": ((), ("selection", "scroll", "multiple_view")),
    "treeitem": ((), ("expand_collapse", "invoke", "scroll_item", "selection_item", "toggle")),
    "window": ((), ("transform", "window", "dock")),
}

# Patterns any control type may expose.
_ALWAYS_ALLOWED = frozenset({"legacy_accessible", "focus"})


class GetControlTypeInfoParams(ElementParams):
    validate_patterns: bool = True
    include_default_properties: bool = False


class GetControlTypeInfo(Operation):
    """
    Describe an element's control type and check its patterns.

    With ``validatePatterns``, patterns are compared against the control type
    table: a missing required pattern or a pattern outside the required and
    optional sets is reported. Control types without an entry get
    ``patternValidation: null``.
    """

    name = "GetControlTypeInfo"
    description = "Control type of an element, its patterns, and whether they fit the type"
    Params = GetControlTypeInfoParams

    def execute(self, ctx: OperationContext, params: GetControlTypeInfoParams) -> OperationResult:
        result = call_backend(ctx.backend.get_element_info, params.locator())
        if not result.is_ok:
            return result
        info: dict[str, Any] = result.value
        control_type = str(info.get("controlType") or "")
        available = list(info.get("supportedPatterns") or [])
        data: dict[str, Any] = {
            "controlType": control_type,
            "automationId": info.get("automationId", ""),
            "name": info.get("name", ""),
            "availablePatterns": available,
        }
        if params.validate_patterns:
            data["patternValidation"] = validate_patterns(control_type, available)
        if params.include_default_properties:
            data["defaultProperties"] = {
                "isEnabled": info.get("isEnabled"),
                "isVisible": info.get("isVisible"),
                "hasKeyboardFocus": info.get("hasKeyboardFocus"),
                "className": info.get("className", ""),
            }
        return OperationResult.success(data)


def validate_patterns(control_type: str, available: list[str]) -> dict[str, Any] | None:
    expected = CONTROL_TYPE_PATTERNS.get(control_type.replace(" ", "").lower())
    if expected is None:
        return None
    required, optional = expected
    missing = [p for p in required if p not in available]
    unexpected = [p for p in available if p not in required and p not in optional and p not in _ALWAYS_ALLOWED]
    return {
        "hasAllRequiredPatterns": not missing,
        "hasValidPatterns": not unexpected,
        "missingRequiredPatterns": missing,
        "unexpectedPatterns": unexpected,
    }
