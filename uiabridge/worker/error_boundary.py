"""Error boundary between operation handlers and the wire.

Every failure the worker writes goes through one of these helpers, so the
mapping from results and exceptions to response envelopes lives in one place.
"""

from __future__ import annotations

import traceback

from loguru import logger

from uiabridge.operations.base import OperationResult
from uiabridge.protocol.envelope import OperationResponse
from uiabridge.utils.exceptions import (
    ErrorCategory,
    ProtocolError,
    UiaBridgeError,
    UnknownOperationError,
    classify_exception,
    sanitize_error_message,
)


def unknown_operation_response(*, operation: str, supported: list[str]) -> OperationResponse:
    """Build the standard unknown-operation failure."""
    exc = UnknownOperationError(operation, supported)
    logger.warning("Unknown operation requested: {}", operation)
    return OperationResponse.from_error(exc)


def result_response(*, operation: str, result: OperationResult) -> OperationResponse:
    """Map a handler's OperationResult to a response envelope."""
    if result.is_ok:
        return OperationResponse.ok(result.value)
    logger.info(
        "Operation {} failed [{}]: {}",
        operation,
        result.category.value if result.category else "unknown",
        sanitize_error_message(result.error or ""),
    )
    return OperationResponse.fail(
        result.error or "operation failed",
        category=result.category or ErrorCategory.BACKEND,
        code=result.code,
        extra=result.details,
    )


def protocol_error_response(*, exc: ProtocolError) -> OperationResponse:
    """Failure for a request line that could not be decoded."""
    logger.warning("Rejected malformed request: {}", exc.message)
    return OperationResponse.from_error(exc)


def bridge_error_response(*, operation: str, exc: UiaBridgeError) -> OperationResponse:
    """Map a UiaBridgeError that escaped a handler to a failure with its category."""
    logger.warning("Operation {} failed with {}: {}", operation, exc.code, sanitize_error_message(exc.message))
    return OperationResponse.from_error(exc)


def unhandled_exception_response(*, operation: str, exc: BaseException) -> OperationResponse:
    """Map an unexpected exception to an internal failure carrying type and traceback."""
    code, category = classify_exception(exc)
    sanitized = sanitize_error_message(str(exc)) or type(exc).__name__
    logger.opt(exception=exc).error("Operation {} raised [{}]: {}", operation, code, sanitized)
    return OperationResponse.fail(
        f"{type(exc).__name__}: {sanitized}",
        category=ErrorCategory.INTERNAL,
        code="INTERNAL_ERROR",
        exception_type=type(exc).__name__,
        stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
        extra={"classifiedCategory": category.value, "classifiedCode": code},
    )
