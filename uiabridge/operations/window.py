"""Window operations.

These accept a window title or process id instead of an element id; an
element id is still honored when the caller already holds one.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from uiabridge.operations.base import (
    Operation,
    OperationContext,
    OperationResult,
    PatternOperation,
    RequiredText,
    TargetParams,
    call_backend,
)

# action name -> (window pattern action, arguments)
WINDOW_ACTIONS: dict[str, tuple[str, dict[str, Any]]] = {
    "setfocus": ("set_focus", {}),
    "minimize": ("set_state", {"state_value": "Minimized"}),
    "maximize": ("set_state", {"state_value": "Maximized"}),
    "normal": ("set_state", {"state_value": "Normal"}),
    "restore": ("set_state", {"state_value": "Normal"}),
    "close": ("close", {}),
}


class WindowActionParams(TargetParams):
    action: str = "setfocus"

    @field_validator("action")
    @classmethod
    def _check_action(cls, value: str) -> str:
        action = value.strip().lower().replace("_", "").replace("-", "")
        if action not in WINDOW_ACTIONS:
            raise ValueError(f"must be one of {', '.join(WINDOW_ACTIONS)}")
        return action


class WindowAction(Operation):
    name = "WindowAction"
    description = "Focus, minimize, maximize, restore or close a window"
    Params = WindowActionParams

    def execute(self, ctx: OperationContext, params: WindowActionParams) -> OperationResult:
        missing = self.require_target(params)
        if missing is not None:
            return missing
        action, arguments = WINDOW_ACTIONS[params.action]
        result = call_backend(ctx.backend.call_pattern, params.locator(), "window", action, dict(arguments))
        if not result.is_ok:
            return result
        return OperationResult.success(f"Window action '{params.action}' completed")


class WindowStateParams(TargetParams):
    window_state: RequiredText


class SetWindowState(PatternOperation):
    name = "SetWindowState"
    description = "Set a window to Normal, Maximized or Minimized"
    Params = WindowStateParams
    pattern = "window"
    action = "set_state"
    needs_element = False

    def arguments(self, params: WindowStateParams) -> dict[str, Any]:
        return {"state_value": params.window_state}


class GetWindowState(PatternOperation):
    name = "GetWindowState"
    description = "Visual and interaction state of a window"
    Params = TargetParams
    pattern = "window"
    action = "get_state"
    needs_element = False


class CloseWindow(PatternOperation):
    name = "CloseWindow"
    description = "Close a window"
    Params = TargetParams
    pattern = "window"
    action = "close"
    needs_element = False
    message = "Window closed successfully"


class WaitForWindowStateParams(WindowStateParams):
    timeout_seconds: float = Field(default=30.0, gt=0)


class WaitForWindowState(PatternOperation):
    name = "WaitForWindowState"
    description = "Block until a window reaches a visual state"
    Params = WaitForWindowStateParams
    pattern = "window"
    action = "wait_for_state"
    needs_element = False

    def arguments(self, params: WaitForWindowStateParams) -> dict[str, Any]:
        return {"state_value": params.window_state, "timeout_seconds": params.timeout_seconds}


class GetWindowInfo(PatternOperation):
    name = "GetWindowInfo"
    description = "Window identity, bounds and state in one call"
    Params = TargetParams
    pattern = "window"
    action = "get_info"
    needs_element = False


class WaitForInputIdleParams(TargetParams):
    timeout_milliseconds: int = Field(default=10000, ge=0)


class WaitForInputIdle(PatternOperation):
    name = "WaitForInputIdle"
    description = "Wait until a window's process is ready for user input"
    Params = WaitForInputIdleParams
    pattern = "window"
    action = "wait_for_input_idle"
    needs_element = False

    def arguments(self, params: WaitForInputIdleParams) -> dict[str, Any]:
        return {"timeout_ms": params.timeout_milliseconds}
