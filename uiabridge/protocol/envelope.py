"""Request/response envelopes exchanged over the worker channel."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from uiabridge.utils.exceptions import ErrorCategory, UiaBridgeError

# Reserved key for debug information attached to failures. Callers must not
# depend on it being present.
ERROR_DETAILS_KEY = "errorDetails"


@dataclass(frozen=True, slots=True)
class OperationRequest:
    """One operation call: a registry name plus a loosely typed parameter bag."""

    operation: str
    parameters: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class OperationResponse:
    """
    Result of exactly one OperationRequest.

    success implies error is None; failure implies data is None. The
    constructors below are the only way the package builds responses, so the
    invariant holds for everything written to the channel.
    """

    success: bool
    data: Any = None
    error: str | None = None
    details: dict[str, Any] | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResponse":
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls,
        error: str,
        *,
        category: ErrorCategory | None = None,
        code: str | None = None,
        exception_type: str | None = None,
        stack_trace: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> "OperationResponse":
        details: dict[str, Any] = dict(extra or {})
        if category is not None:
            details["category"] = category.value
        if code is not None:
            details["code"] = code
        if exception_type is not None:
            details["exceptionType"] = exception_type
        if stack_trace is not None:
            details["stackTrace"] = stack_trace
        return cls(success=False, data=None, error=error or "operation failed", details=details or None)

    @classmethod
    def from_error(cls, exc: UiaBridgeError, **kwargs: Any) -> "OperationResponse":
        """Build a failure from one of our own exceptions."""
        return cls.fail(exc.message, category=exc.category, code=exc.code, extra=exc.details, **kwargs)

    @property
    def category(self) -> ErrorCategory | None:
        """Failure category if the worker or supervisor attached one."""
        raw = (self.details or {}).get("category")
        if not raw:
            return None
        try:
            return ErrorCategory(raw)
        except ValueError:
            return None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "data": self.data, "error": self.error}
        if not self.success and self.details:
            payload[ERROR_DETAILS_KEY] = self.details
        return payload
