"""Scroll, expand/collapse, dock, transform and view operations."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from uiabridge.operations.base import ElementParams, PatternOperation, RequiredText


class ScrollParams(ElementParams):
    direction: RequiredText
    amount: float = Field(default=1.0, gt=0)


class ScrollElement(PatternOperation):
    name = "ScrollElement"
    aliases = ("scroll",)
    description = "Scroll a container up, down, left or right"
    Params = ScrollParams
    pattern = "scroll"
    action = "scroll"

    def arguments(self, params: ScrollParams) -> dict[str, Any]:
        return {"direction": params.direction, "amount": params.amount}


class ScrollElementIntoView(PatternOperation):
    name = "ScrollElementIntoView"
    aliases = ("scrollintoview",)
    description = "Scroll the parent container until the element is visible"
    pattern = "scroll_item"
    action = "scroll_into_view"
    message = "Element scrolled into view"


class SetScrollPercentParams(ElementParams):
    horizontal_percent: float = -1
    vertical_percent: float = -1


class SetScrollPercent(PatternOperation):
    name = "SetScrollPercent"
    description = "Set scroll position as a percentage (-1 leaves an axis unchanged)"
    Params = SetScrollPercentParams
    pattern = "scroll"
    action = "set_percent"

    def arguments(self, params: SetScrollPercentParams) -> dict[str, Any]:
        return {"horizontal": params.horizontal_percent, "vertical": params.vertical_percent}


class GetScrollInfo(PatternOperation):
    name = "GetScrollInfo"
    description = "Scroll position, view size and scrollability"
    pattern = "scroll"
    action = "get_info"


class ExpandCollapseParams(ElementParams):
    action: str = "toggle"


class ExpandCollapseElement(PatternOperation):
    name = "ExpandCollapseElement"
    aliases = ("expandcollapse",)
    description = "Expand, collapse or toggle a tree item, combo box or menu"
    Params = ExpandCollapseParams
    pattern = "expand_collapse"
    action = "set"

    def arguments(self, params: ExpandCollapseParams) -> dict[str, Any]:
        return {"action": params.action}


class DockParams(ElementParams):
    dock_position: RequiredText


class DockElement(PatternOperation):
    name = "DockElement"
    description = "Dock an element to an edge of its container"
    Params = DockParams
    pattern = "dock"
    action = "set"

    def arguments(self, params: DockParams) -> dict[str, Any]:
        return {"position": params.dock_position}


class MoveParams(ElementParams):
    x: float
    y: float


class MoveElement(PatternOperation):
    name = "MoveElement"
    description = "Move an element to screen coordinates"
    Params = MoveParams
    pattern = "transform"
    action = "move"

    def arguments(self, params: MoveParams) -> dict[str, Any]:
        return {"x": params.x, "y": params.y}


class ResizeParams(ElementParams):
    width: float
    height: float


class ResizeElement(PatternOperation):
    name = "ResizeElement"
    description = "Resize an element"
    Params = ResizeParams
    pattern = "transform"
    action = "resize"

    def arguments(self, params: ResizeParams) -> dict[str, Any]:
        return {"width": params.width, "height": params.height}


class RotateParams(ElementParams):
    degrees: float


class RotateElement(PatternOperation):
    name = "RotateElement"
    description = "Rotate an element"
    Params = RotateParams
    pattern = "transform"
    action = "rotate"

    def arguments(self, params: RotateParams) -> dict[str, Any]:
        return {"degrees": params.degrees}


class GetAvailableViews(PatternOperation):
    name = "GetAvailableViews"
    description = "List the views a multi-view control supports and the current one"
    pattern = "multiple_view"
    action = "get_views"


class GetCurrentView(PatternOperation):
    name = "GetCurrentView"
    description = "Read the current view of a multi-view control"
    pattern = "multiple_view"
    action = "get"


class ViewParams(ElementParams):
    view_id: int = Field(ge=0)


class GetViewName(PatternOperation):
    name = "GetViewName"
    description = "Name of one view of a multi-view control"
    Params = ViewParams
    pattern = "multiple_view"
    action = "get_view_name"

    def arguments(self, params: ViewParams) -> dict[str, Any]:
        return {"view_id": params.view_id}


class SetView(PatternOperation):
    name = "SetView"
    description = "Switch a multi-view control to another view"
    Params = ViewParams
    pattern = "multiple_view"
    action = "set_view"

    def arguments(self, params: ViewParams) -> dict[str, Any]:
        return {"view_id": params.view_id}
