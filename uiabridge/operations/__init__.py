"""Operation handlers served by the worker."""

from uiabridge.operations.base import (
    ElementParams,
    Operation,
    OperationContext,
    OperationParams,
    OperationResult,
    PatternOperation,
    TargetParams,
    call_backend,
)
from uiabridge.operations.diagnostics import GetSupportedOperations, Ping
from uiabridge.operations.grid import GetColumnHeaders, GetGridInfo, GetGridItem, GetRowHeaders, GetTableInfo
from uiabridge.operations.layout import (
    DockElement,
    ExpandCollapseElement,
    GetAvailableViews,
    GetCurrentView,
    GetScrollInfo,
    GetViewName,
    MoveElement,
    ResizeElement,
    RotateElement,
    ScrollElement,
    ScrollElementIntoView,
    SetScrollPercent,
    SetView,
)
from uiabridge.operations.legacy import (
    DoLegacyDefaultAction,
    GetControlTypeInfo,
    GetLegacyProperties,
    GetLegacyState,
    SelectLegacyItem,
    SetLegacyValue,
)
from uiabridge.operations.patterns import (
    GetElementValue,
    GetRangeValue,
    GetToggleState,
    InvokeElement,
    IsReadOnly,
    SetElementValue,
    SetFocus,
    SetRangeValue,
    SetToggleState,
    ToggleElement,
)
from uiabridge.operations.search import FindElements, GetChildren, GetDesktopWindows, GetElementInfo, GetElementTree
from uiabridge.operations.selection import (
    AddToSelection,
    ClearSelection,
    GetSelection,
    IsSelected,
    RemoveFromSelection,
    SelectElement,
)
from uiabridge.operations.text import AppendText, FindText, GetText, GetTextSelection, SelectText, SetText
from uiabridge.operations.window import (
    CloseWindow,
    GetWindowInfo,
    GetWindowState,
    SetWindowState,
    WaitForInputIdle,
    WaitForWindowState,
    WindowAction,
)

ALL_OPERATIONS: tuple[type[Operation], ...] = (
    # search / tree
    FindElements,
    GetElementInfo,
    GetDesktopWindows,
    GetChildren,
    GetElementTree,
    # core
    InvokeElement,
    SetElementValue,
    GetElementValue,
    IsReadOnly,
    ToggleElement,
    GetToggleState,
    SetToggleState,
    SetRangeValue,
    GetRangeValue,
    SetFocus,
    # selection
    SelectElement,
    AddToSelection,
    RemoveFromSelection,
    ClearSelection,
    GetSelection,
    IsSelected,
    # text
    GetText,
    SetText,
    AppendText,
    SelectText,
    FindText,
    GetTextSelection,
    # layout / transform
    ScrollElement,
    ScrollElementIntoView,
    SetScrollPercent,
    GetScrollInfo,
    ExpandCollapseElement,
    DockElement,
    MoveElement,
    ResizeElement,
    RotateElement,
    # window
    WindowAction,
    SetWindowState,
    GetWindowState,
    CloseWindow,
    WaitForWindowState,
    GetWindowInfo,
    WaitForInputIdle,
    # grid / table
    GetGridInfo,
    GetGridItem,
    GetTableInfo,
    GetColumnHeaders,
    GetRowHeaders,
    # multiple view
    GetAvailableViews,
    GetCurrentView,
    GetViewName,
    SetView,
    # legacy accessibility
    GetLegacyProperties,
    GetLegacyState,
    DoLegacyDefaultAction,
    SetLegacyValue,
    SelectLegacyItem,
    GetControlTypeInfo,
    # built-ins
    Ping,
    GetSupportedOperations,
)

__all__ = [
    "ALL_OPERATIONS",
    "ElementParams",
    "Operation",
    "OperationContext",
    "OperationParams",
    "OperationResult",
    "PatternOperation",
    "TargetParams",
    "call_backend",
]
