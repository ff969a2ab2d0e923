"""Typed request models for the operation vocabulary.

Each model carries the operation name it maps to and converts to and from the
generic OperationRequest envelope. Fields left as None are omitted from the
envelope, so the worker applies its own defaults for them.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from uiabridge.protocol.envelope import OperationRequest

# Added to a request's own timeout when it becomes the supervisor deadline, so
# the handler reports its own timeout before the worker is killed.
DEADLINE_GRACE_SECONDS = 5.0


class TypedRequest(BaseModel):
    """Base for typed requests; subclasses set ``operation``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    operation: ClassVar[str] = ""
    # field name -> dotted path into OperationDefaults
    config_defaults: ClassVar[dict[str, str]] = {}

    def to_envelope(self) -> OperationRequest:
        return OperationRequest(
            operation=self.operation,
            parameters=self.model_dump(mode="json", by_alias=True, exclude_none=True),
        )

    @classmethod
    def from_envelope(cls, request: OperationRequest) -> "TypedRequest":
        target = request_type_for(request.operation)
        if target is not cls:
            raise ValueError(f"Envelope operation {request.operation!r} does not match {cls.operation}")
        return cls.model_validate(request.parameters)

    def deadline_seconds(self) -> float | None:
        """Supervisor deadline implied by the request itself, if any."""
        return None


class ElementRequest(TypedRequest):
    element_id: str
    window_title: str | None = None
    process_id: int | None = None


class WindowTargetRequest(TypedRequest):
    element_id: str | None = None
    window_title: str | None = None
    process_id: int | None = None


# -- search / tree ------------------------------------------------------


class FindElementsRequest(TypedRequest):
    operation: ClassVar[str] = "FindElements"
    config_defaults: ClassVar[dict[str, str]] = {
        "scope": "element_search.default_scope",
        "use_cache": "element_search.use_cache",
        "use_regex": "element_search.use_regex",
        "use_wildcard": "element_search.use_wildcard",
        "max_results": "element_search.max_results",
        "timeout_seconds": "element_search.timeout_seconds",
    }

    search_text: str | None = None
    name: str | None = None
    automation_id: str | None = None
    class_name: str | None = None
    control_type: str | None = None
    window_title: str | None = None
    process_id: int | None = None
    scope: str | None = None
    required_pattern: str | None = None
    visible_only: bool | None = None
    enabled_only: bool | None = None
    use_regex: bool | None = None
    use_wildcard: bool | None = None
    use_cache: bool | None = None
    max_results: int | None = None
    timeout_seconds: float | None = None

    def deadline_seconds(self) -> float | None:
        if self.timeout_seconds is None:
            return None
        return self.timeout_seconds + DEADLINE_GRACE_SECONDS


class GetElementInfoRequest(ElementRequest):
    operation: ClassVar[str] = "GetElementInfo"


class GetDesktopWindowsRequest(TypedRequest):
    operation: ClassVar[str] = "GetDesktopWindows"
    config_defaults: ClassVar[dict[str, str]] = {"include_invisible": "window_operation.include_invisible"}

    include_invisible: bool | None = None


class GetChildrenRequest(WindowTargetRequest):
    operation: ClassVar[str] = "GetChildren"


class GetElementTreeRequest(WindowTargetRequest):
    operation: ClassVar[str] = "GetElementTree"

    max_depth: int | None = Field(default=None, ge=0, le=20)


# -- core patterns ------------------------------------------------------


class InvokeElementRequest(ElementRequest):
    operation: ClassVar[str] = "InvokeElement"


class SetElementValueRequest(ElementRequest):
    operation: ClassVar[str] = "SetElementValue"

    value: str


class GetElementValueRequest(ElementRequest):
    operation: ClassVar[str] = "GetElementValue"


class IsReadOnlyRequest(ElementRequest):
    operation: ClassVar[str] = "IsReadOnly"


class ToggleElementRequest(ElementRequest):
    operation: ClassVar[str] = "ToggleElement"


class GetToggleStateRequest(ElementRequest):
    operation: ClassVar[str] = "GetToggleState"


class SetToggleStateRequest(ElementRequest):
    operation: ClassVar[str] = "SetToggleState"

    toggle_state: str


class SetRangeValueRequest(ElementRequest):
    operation: ClassVar[str] = "SetRangeValue"
    config_defaults: ClassVar[dict[str, str]] = {"value": "range_value.value"}

    value: float | None = None


class GetRangeValueRequest(ElementRequest):
    operation: ClassVar[str] = "GetRangeValue"


class SetFocusRequest(ElementRequest):
    operation: ClassVar[str] = "SetFocus"


# -- selection ----------------------------------------------------------


class SelectElementRequest(ElementRequest):
    operation: ClassVar[str] = "SelectElement"


class AddToSelectionRequest(ElementRequest):
    operation: ClassVar[str] = "AddToSelection"


class RemoveFromSelectionRequest(ElementRequest):
    operation: ClassVar[str] = "RemoveFromSelection"


class ClearSelectionRequest(ElementRequest):
    operation: ClassVar[str] = "ClearSelection"


class GetSelectionRequest(ElementRequest):
    operation: ClassVar[str] = "GetSelection"


class IsSelectedRequest(ElementRequest):
    operation: ClassVar[str] = "IsSelected"


# -- text ---------------------------------------------------------------


class GetTextRequest(ElementRequest):
    operation: ClassVar[str] = "GetText"

    max_length: int | None = None


class SetTextRequest(ElementRequest):
    operation: ClassVar[str] = "SetText"

    text: str


class AppendTextRequest(ElementRequest):
    operation: ClassVar[str] = "AppendText"

    text: str


class SelectTextRequest(ElementRequest):
    operation: ClassVar[str] = "SelectText"

    start_index: int
    length: int


class FindTextRequest(ElementRequest):
    operation: ClassVar[str] = "FindText"
    config_defaults: ClassVar[dict[str, str]] = {
        "backward": "text_operation.backward",
        "ignore_case": "text_operation.ignore_case",
    }

    search_text: str
    backward: bool | None = None
    ignore_case: bool | None = None


class GetTextSelectionRequest(ElementRequest):
    operation: ClassVar[str] = "GetTextSelection"


# -- layout / transform -------------------------------------------------


class ScrollElementRequest(ElementRequest):
    operation: ClassVar[str] = "ScrollElement"
    config_defaults: ClassVar[dict[str, str]] = {
        "direction": "layout.scroll_direction",
        "amount": "layout.scroll_amount",
    }

    direction: str | None = None
    amount: float | None = None


class ScrollElementIntoViewRequest(ElementRequest):
    operation: ClassVar[str] = "ScrollElementIntoView"


class SetScrollPercentRequest(ElementRequest):
    operation: ClassVar[str] = "SetScrollPercent"

    horizontal_percent: float | None = None
    vertical_percent: float | None = None


class GetScrollInfoRequest(ElementRequest):
    operation: ClassVar[str] = "GetScrollInfo"


class ExpandCollapseElementRequest(ElementRequest):
    operation: ClassVar[str] = "ExpandCollapseElement"
    config_defaults: ClassVar[dict[str, str]] = {"action": "layout.expand_collapse_action"}

    action: str | None = None


class DockElementRequest(ElementRequest):
    operation: ClassVar[str] = "DockElement"
    config_defaults: ClassVar[dict[str, str]] = {"dock_position": "layout.dock_position"}

    dock_position: str | None = None


class MoveElementRequest(ElementRequest):
    operation: ClassVar[str] = "MoveElement"
    config_defaults: ClassVar[dict[str, str]] = {"x": "transform.x", "y": "transform.y"}

    x: float | None = None
    y: float | None = None


class ResizeElementRequest(ElementRequest):
    operation: ClassVar[str] = "ResizeElement"
    config_defaults: ClassVar[dict[str, str]] = {"width": "transform.width", "height": "transform.height"}

    width: float | None = None
    height: float | None = None


class RotateElementRequest(ElementRequest):
    operation: ClassVar[str] = "RotateElement"
    config_defaults: ClassVar[dict[str, str]] = {"degrees": "transform.degrees"}

    degrees: float | None = None


# -- window -------------------------------------------------------------


class WindowActionRequest(WindowTargetRequest):
    operation: ClassVar[str] = "WindowAction"
    config_defaults: ClassVar[dict[str, str]] = {"action": "window_operation.default_action"}

    action: str | None = None


class SetWindowStateRequest(WindowTargetRequest):
    operation: ClassVar[str] = "SetWindowState"

    window_state: str


class GetWindowStateRequest(WindowTargetRequest):
    operation: ClassVar[str] = "GetWindowState"


class CloseWindowRequest(WindowTargetRequest):
    operation: ClassVar[str] = "CloseWindow"


class WaitForWindowStateRequest(WindowTargetRequest):
    operation: ClassVar[str] = "WaitForWindowState"
    config_defaults: ClassVar[dict[str, str]] = {"timeout_seconds": "window_operation.wait_timeout_seconds"}

    window_state: str
    timeout_seconds: float | None = None

    def deadline_seconds(self) -> float | None:
        if self.timeout_seconds is None:
            return None
        return self.timeout_seconds + DEADLINE_GRACE_SECONDS


class GetWindowInfoRequest(WindowTargetRequest):
    operation: ClassVar[str] = "GetWindowInfo"


class WaitForInputIdleRequest(WindowTargetRequest):
    operation: ClassVar[str] = "WaitForInputIdle"

    timeout_milliseconds: int | None = None

    def deadline_seconds(self) -> float | None:
        if self.timeout_milliseconds is None:
            return None
        return self.timeout_milliseconds / 1000 + DEADLINE_GRACE_SECONDS


# -- grid / table -------------------------------------------------------


class GetGridInfoRequest(ElementRequest):
    operation: ClassVar[str] = "GetGridInfo"


class GetGridItemRequest(ElementRequest):
    operation: ClassVar[str] = "GetGridItem"

    row: int = Field(ge=0)
    column: int = Field(ge=0)


class GetTableInfoRequest(ElementRequest):
    operation: ClassVar[str] = "GetTableInfo"


class GetColumnHeadersRequest(ElementRequest):
    operation: ClassVar[str] = "GetColumnHeaders"


class GetRowHeadersRequest(ElementRequest):
    operation: ClassVar[str] = "GetRowHeaders"


# -- multiple view ------------------------------------------------------


class GetAvailableViewsRequest(ElementRequest):
    operation: ClassVar[str] = "GetAvailableViews"


class GetCurrentViewRequest(ElementRequest):
    operation: ClassVar[str] = "GetCurrentView"


class GetViewNameRequest(ElementRequest):
    operation: ClassVar[str] = "GetViewName"

    view_id: int = Field(ge=0)


class SetViewRequest(ElementRequest):
    operation: ClassVar[str] = "SetView"

    view_id: int = Field(ge=0)


# -- legacy accessibility -----------------------------------------------


class GetLegacyPropertiesRequest(ElementRequest):
    operation: ClassVar[str] = "GetLegacyProperties"


class GetLegacyStateRequest(ElementRequest):
    operation: ClassVar[str] = "GetLegacyState"


class DoLegacyDefaultActionRequest(ElementRequest):
    operation: ClassVar[str] = "DoLegacyDefaultAction"


class SetLegacyValueRequest(ElementRequest):
    operation: ClassVar[str] = "SetLegacyValue"

    value: str


class SelectLegacyItemRequest(ElementRequest):
    operation: ClassVar[str] = "SelectLegacyItem"

    flags_select: int = Field(ge=1, le=0x1F)


class GetControlTypeInfoRequest(ElementRequest):
    operation: ClassVar[str] = "GetControlTypeInfo"

    validate_patterns: bool | None = None
    include_default_properties: bool | None = None


# -- built-ins ----------------------------------------------------------


class PingRequest(TypedRequest):
    operation: ClassVar[str] = "Ping"


class GetSupportedOperationsRequest(TypedRequest):
    operation: ClassVar[str] = "GetSupportedOperations"


REQUEST_TYPES: tuple[type[TypedRequest], ...] = (
    FindElementsRequest,
    GetElementInfoRequest,
    GetDesktopWindowsRequest,
    GetChildrenRequest,
    GetElementTreeRequest,
    InvokeElementRequest,
    SetElementValueRequest,
    GetElementValueRequest,
    IsReadOnlyRequest,
    ToggleElementRequest,
    GetToggleStateRequest,
    SetToggleStateRequest,
    SetRangeValueRequest,
    GetRangeValueRequest,
    SetFocusRequest,
    SelectElementRequest,
    AddToSelectionRequest,
    RemoveFromSelectionRequest,
    ClearSelectionRequest,
    GetSelectionRequest,
    IsSelectedRequest,
    GetTextRequest,
    SetTextRequest,
    AppendTextRequest,
    SelectTextRequest,
    FindTextRequest,
    GetTextSelectionRequest,
    ScrollElementRequest,
    ScrollElementIntoViewRequest,
    SetScrollPercentRequest,
    GetScrollInfoRequest,
    ExpandCollapseElementRequest,
    DockElementRequest,
    MoveElementRequest,
    ResizeElementRequest,
    RotateElementRequest,
    WindowActionRequest,
    SetWindowStateRequest,
    GetWindowStateRequest,
    CloseWindowRequest,
    WaitForWindowStateRequest,
    GetWindowInfoRequest,
    WaitForInputIdleRequest,
    GetGridInfoRequest,
    GetGridItemRequest,
    GetTableInfoRequest,
    GetColumnHeadersRequest,
    GetRowHeadersRequest,
    GetAvailableViewsRequest,
    GetCurrentViewRequest,
    GetViewNameRequest,
    SetViewRequest,
    GetLegacyPropertiesRequest,
    GetLegacyStateRequest,
    DoLegacyDefaultActionRequest,
    SetLegacyValueRequest,
    SelectLegacyItemRequest,
    GetControlTypeInfoRequest,
    PingRequest,
    GetSupportedOperationsRequest,
)

_INDEX: dict[str, type[TypedRequest]] | None = None


def _build_index() -> dict[str, type[TypedRequest]]:
    from uiabridge.operations import ALL_OPERATIONS

    by_name = {cls.operation.casefold(): cls for cls in REQUEST_TYPES}
    index = dict(by_name)
    for operation in ALL_OPERATIONS:
        request_type = by_name.get(operation.name.casefold())
        if request_type is None:
            continue
        for alias in operation.aliases:
            index[alias.casefold()] = request_type
    return index


def request_type_for(operation: str) -> type[TypedRequest] | None:
    """Typed request class for an operation name or alias, ignoring case."""
    global _INDEX
    if _INDEX is None:
        _INDEX = _build_index()
    return _INDEX.get(str(operation).strip().casefold())


def typed_request_from_envelope(request: OperationRequest) -> TypedRequest:
    """Validate a generic envelope into its typed request."""
    request_type = request_type_for(request.operation)
    if request_type is None:
        raise ValueError(f"No typed request for operation {request.operation!r}")
    return request_type.from_envelope(request)


def describe_request(request_type: type[TypedRequest]) -> dict[str, Any]:
    """Wire field names and whether each is required."""
    return {
        "operation": request_type.operation,
        "fields": {
            (info.alias or name): {"required": info.is_required()}
            for name, info in request_type.model_fields.items()
        },
    }
