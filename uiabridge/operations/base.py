"""Base classes for worker-side operation handlers.

A handler turns the loose wire parameter bag into a small pydantic model,
calls the backend once, and returns an OperationResult. Backend errors are
values here; only unexpected exceptions reach the dispatch boundary.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any, Callable, ClassVar

from pydantic import BaseModel, ConfigDict, StringConstraints
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from uiabridge.backends.base import AutomationBackend, ElementLocator
from uiabridge.utils.exceptions import ErrorCategory, UiaBridgeError, ValidationError

if TYPE_CHECKING:
    from uiabridge.worker.registry import OperationRegistry

# Non-empty string after trimming; a missing or blank value is reported as required.
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

_REQUIRED_ERROR_TYPES = {"missing", "string_too_short"}


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Result-style return value of every handler."""

    value: Any = None
    error: str | None = None
    category: ErrorCategory | None = None
    code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        message: str,
        category: ErrorCategory = ErrorCategory.BACKEND,
        *,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> "OperationResult":
        return cls(error=message, category=category, code=code, details=dict(details or {}))

    @classmethod
    def from_error(cls, exc: UiaBridgeError) -> "OperationResult":
        return cls.failure(exc.message, exc.category, code=exc.code, details=exc.details)


@dataclass(slots=True)
class OperationContext:
    """What a handler can reach: the backend and the registry it lives in."""

    backend: AutomationBackend
    registry: "OperationRegistry | None" = None
    started_at: float = field(default_factory=time.monotonic)
    operation_count: int = 0  # completed dispatches; the running one is not counted

    @property
    def backend_name(self) -> str:
        return getattr(self.backend, "name", type(self.backend).__name__)


def call_backend(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> OperationResult:
    """Call one backend capability, turning our own errors into a failure result."""
    try:
        return OperationResult.success(fn(*args, **kwargs))
    except UiaBridgeError as exc:
        return OperationResult.from_error(exc)


class OperationParams(BaseModel):
    """Wire parameters: camelCase on the wire, snake_case in code, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class TargetParams(OperationParams):
    """Optional element/window target."""

    element_id: str = ""
    window_title: str = ""
    process_id: int = 0

    def locator(self) -> ElementLocator:
        return ElementLocator(
            element_id=self.element_id.strip(),
            window_title=self.window_title.strip(),
            process_id=self.process_id,
        )

    def has_target(self) -> bool:
        return bool(self.element_id.strip() or self.window_title.strip() or self.process_id)


class ElementParams(TargetParams):
    """Target with a mandatory elementId."""

    element_id: RequiredText


def _wire_name(model: type[BaseModel], loc: tuple[Any, ...]) -> str:
    if not loc:
        return "parameters"
    head = loc[0]
    info = model.model_fields.get(str(head))
    if info is not None and info.alias:
        return info.alias
    return str(head)


class Operation(ABC):
    """One named operation in the registry."""

    name: ClassVar[str]
    aliases: ClassVar[tuple[str, ...]] = ()
    description: ClassVar[str] = ""
    Params: ClassVar[type[OperationParams]] = OperationParams

    def parse(self, parameters: dict[str, Any]) -> OperationParams:
        """Project the wire bag onto Params, raising ValidationError with a wire field name."""
        try:
            return self.Params.model_validate(parameters or {})
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            field_name = _wire_name(self.Params, tuple(first.get("loc", ())))
            if first.get("type") in _REQUIRED_ERROR_TYPES:
                raise ValidationError.required(field_name, self.name) from exc
            raise ValidationError(
                f"Invalid {field_name} for {self.name}: {first.get('msg', 'invalid value')}",
                field=field_name,
                operation=self.name,
            ) from exc

    def run(self, ctx: OperationContext, parameters: dict[str, Any]) -> OperationResult:
        try:
            params = self.parse(parameters)
        except ValidationError as exc:
            return OperationResult.from_error(exc)
        return self.execute(ctx, params)

    def require_target(self, params: TargetParams) -> OperationResult | None:
        if params.has_target():
            return None
        return OperationResult.from_error(ValidationError.required("elementId or windowTitle", self.name))

    @abstractmethod
    def execute(self, ctx: OperationContext, params: Any) -> OperationResult:
        ...


class PatternOperation(Operation):
    """Operation that maps onto one backend pattern action.

    ``message`` replaces the backend result on success; it is formatted with
    the parsed parameters.
    """

    Params: ClassVar[type[OperationParams]] = ElementParams
    pattern: ClassVar[str]
    action: ClassVar[str]
    message: ClassVar[str | None] = None
    needs_element: ClassVar[bool] = True

    def arguments(self, params: Any) -> dict[str, Any]:
        return {}

    def execute(self, ctx: OperationContext, params: Any) -> OperationResult:
        if not self.needs_element:
            missing = self.require_target(params)
            if missing is not None:
                return missing
        result = call_backend(ctx.backend.call_pattern, params.locator(), self.pattern, self.action, self.arguments(params))
        if result.is_ok and self.message is not None:
            return OperationResult.success(self.message.format(**params.model_dump()))
        return result
