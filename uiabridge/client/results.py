"""Result models for ``TypedExecutor.execute_typed``."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ResultModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class BoundingRectangle(ResultModel):
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


class ElementInfo(ResultModel):
    element_id: str
    automation_id: str = ""
    name: str = ""
    control_type: str = ""
    class_name: str = ""
    process_id: int = 0
    is_enabled: bool = True
    is_visible: bool = True
    has_keyboard_focus: bool = False
    bounding_rectangle: BoundingRectangle = Field(default_factory=BoundingRectangle)
    supported_patterns: list[str] = Field(default_factory=list)


class FindElementsResult(ResultModel):
    elements: list[ElementInfo]
    count: int
    truncated: bool = False


class WindowInfo(ElementInfo):
    title: str = ""
    window_state: str = "Normal"


class DesktopWindowsResult(ResultModel):
    windows: list[WindowInfo]
    count: int


class TextResult(ResultModel):
    text: str
    length: int


class RangeValueResult(ResultModel):
    value: float
    minimum: float
    maximum: float
    small_change: float = 1
    large_change: float = 10
    is_read_only: bool = False


class StateResult(ResultModel):
    state: str


class ViewInfo(ResultModel):
    view_id: int
    name: str = ""


class AvailableViewsResult(ResultModel):
    current_view: int
    views: list[ViewInfo]


class LegacyPropertiesResult(ResultModel):
    name: str = ""
    value: str = ""
    description: str = ""
    role: str = ""
    help: str = ""
    keyboard_shortcut: str = ""
    default_action: str = ""
    child_id: int = 0
    state: int = 0
    state_flags: list[str] = Field(default_factory=list)


class PatternValidation(ResultModel):
    has_all_required_patterns: bool
    has_valid_patterns: bool
    missing_required_patterns: list[str] = Field(default_factory=list)
    unexpected_patterns: list[str] = Field(default_factory=list)


class ControlTypeInfoResult(ResultModel):
    control_type: str
    automation_id: str = ""
    name: str = ""
    available_patterns: list[str] = Field(default_factory=list)
    pattern_validation: PatternValidation | None = None
    default_properties: dict[str, object] | None = None


class PingResult(ResultModel):
    pong: bool
    pid: int
    backend: str
    uptime_seconds: float
    operation_count: int = 0


class OperationDescription(ResultModel):
    name: str
    aliases: list[str] = Field(default_factory=list)
    description: str = ""


class SupportedOperationsResult(ResultModel):
    operations: list[OperationDescription]
    count: int
