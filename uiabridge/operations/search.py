"""Element search and tree navigation operations."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from uiabridge.backends.base import SEARCH_SCOPES, ElementQuery
from uiabridge.operations.base import (
    ElementParams,
    Operation,
    OperationContext,
    OperationParams,
    OperationResult,
    TargetParams,
    call_backend,
)
from uiabridge.utils.exceptions import ValidationError


class FindElementsParams(OperationParams):
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
    use_cache: bool = True
    max_results: int = Field(default=100, ge=1, le=10000)

    @field_validator("scope")
    @classmethod
    def _check_scope(cls, value: str) -> str:
        scope = value.strip().lower()
        if scope not in SEARCH_SCOPES:
            raise ValueError(f"must be one of {', '.join(SEARCH_SCOPES)}")
        return scope


class FindElements(Operation):
    name = "FindElements"
    aliases = ("findall", "SearchElements")
    description = "Find elements by text, name, automation id, class, control type or pattern"
    Params = FindElementsParams

    def execute(self, ctx: OperationContext, params: FindElementsParams) -> OperationResult:
        if params.use_regex and params.use_wildcard:
            return OperationResult.from_error(
                ValidationError("useRegex and useWildcard cannot both be true", field="useRegex", operation=self.name)
            )
        query = ElementQuery(
            search_text=params.search_text,
            name=params.name,
            automation_id=params.automation_id,
            class_name=params.class_name,
            control_type=params.control_type,
            window_title=params.window_title,
            process_id=params.process_id,
            scope=params.scope,
            required_pattern=params.required_pattern,
            visible_only=params.visible_only,
            enabled_only=params.enabled_only,
            use_regex=params.use_regex,
            use_wildcard=params.use_wildcard,
            # One extra match tells a full page from a cut-off one.
            max_results=params.max_results + 1,
            use_cache=params.use_cache,
        )
        result = call_backend(ctx.backend.find_elements, query)
        if not result.is_ok:
            return result
        elements: list[dict[str, Any]] = result.value
        truncated = len(elements) > params.max_results
        elements = elements[: params.max_results]
        return OperationResult.success({"elements": elements, "count": len(elements), "truncated": truncated})


class GetElementInfo(Operation):
    name = "GetElementInfo"
    aliases = ("getproperties", "GetElementDetails")
    description = "Describe one element: identity, state, bounds and supported patterns"
    Params = ElementParams

    def execute(self, ctx: OperationContext, params: ElementParams) -> OperationResult:
        return call_backend(ctx.backend.get_element_info, params.locator())


class GetDesktopWindowsParams(OperationParams):
    include_invisible: bool = False


class GetDesktopWindows(Operation):
    name = "GetDesktopWindows"
    aliases = ("getwindows", "ListWindows")
    description = "List top-level windows"
    Params = GetDesktopWindowsParams

    def execute(self, ctx: OperationContext, params: GetDesktopWindowsParams) -> OperationResult:
        result = call_backend(ctx.backend.get_desktop_windows, params.include_invisible)
        if not result.is_ok:
            return result
        return OperationResult.success({"windows": result.value, "count": len(result.value)})


class GetChildren(Operation):
    name = "GetChildren"
    description = "List the direct children of an element or window"
    Params = TargetParams

    def execute(self, ctx: OperationContext, params: TargetParams) -> OperationResult:
        missing = self.require_target(params)
        if missing is not None:
            return missing
        return call_backend(ctx.backend.get_children, params.locator())


class GetElementTreeParams(TargetParams):
    max_depth: int = Field(default=3, ge=0, le=20)


class GetElementTree(Operation):
    name = "GetElementTree"
    aliases = ("gettree",)
    description = "Element tree under an element, a window, or the whole desktop"
    Params = GetElementTreeParams

    def execute(self, ctx: OperationContext, params: GetElementTreeParams) -> OperationResult:
        locator = params.locator() if params.has_target() else None
        return call_backend(ctx.backend.get_tree, locator, params.max_depth)
