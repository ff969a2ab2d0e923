"""
Exception hierarchy and error handling utilities for uiabridge.

Provides:
- Custom exception classes with error codes and categories
- Classification of foreign exceptions into the same categories
- Safe error message formatting (no sensitive data leak)

Backend-specific exceptions never cross the worker boundary: handlers raise
or translate into these types, and the dispatch boundary turns them into
failure responses.
"""

from __future__ import annotations

import json
import re
import subprocess
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories surfaced in failure responses."""
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    NOT_SUPPORTED = "not_supported"
    PERMISSION = "permission"
    INVALID_OPERATION = "invalid_operation"
    BACKEND = "backend"
    UNKNOWN_OPERATION = "unknown_operation"
    PROTOCOL = "protocol"
    TIMEOUT = "timeout"
    CRASH = "crash"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


class UiaBridgeError(Exception):
    """Base exception for all uiabridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        category: ErrorCategory = ErrorCategory.INTERNAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class ValidationError(UiaBridgeError):
    """Input validation error."""

    def __init__(self, message: str, field: str | None = None, operation: str | None = None):
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if operation:
            details["operation"] = operation
        super().__init__(message, code="VALIDATION_ERROR", category=ErrorCategory.VALIDATION, details=details)

    @classmethod
    def required(cls, field: str, operation: str) -> "ValidationError":
        return cls(f"{field} is required for {operation}", field=field, operation=operation)


class ElementNotFoundError(UiaBridgeError):
    """No element matched the locator."""

    def __init__(self, locator: str, message: str | None = None):
        super().__init__(
            message or f"Element not found: {locator}",
            code="ELEMENT_NOT_FOUND",
            category=ErrorCategory.NOT_FOUND,
            details={"locator": locator},
        )


class NotSupportedError(UiaBridgeError):
    """The element does not support the requested pattern or action."""

    def __init__(self, message: str, pattern: str | None = None):
        details = {"pattern": pattern} if pattern else {}
        super().__init__(message, code="NOT_SUPPORTED", category=ErrorCategory.NOT_SUPPORTED, details=details)


class AccessDeniedError(UiaBridgeError):
    """The backend refused access to the element or process."""

    def __init__(self, message: str, resource: str | None = None):
        details = {"resource": resource} if resource else {}
        super().__init__(message, code="ACCESS_DENIED", category=ErrorCategory.PERMISSION, details=details)


class InvalidOperationError(UiaBridgeError):
    """The element is in a state where the action cannot be performed."""

    def __init__(self, message: str):
        super().__init__(message, code="INVALID_OPERATION", category=ErrorCategory.INVALID_OPERATION)


class BackendError(UiaBridgeError):
    """Generic failure reported by the automation backend."""

    def __init__(self, message: str, backend: str | None = None):
        details = {"backend": backend} if backend else {}
        super().__init__(message, code="BACKEND_ERROR", category=ErrorCategory.BACKEND, details=details)


class UnknownOperationError(UiaBridgeError):
    """Operation name is not in the registry."""

    def __init__(self, operation: str, supported: list[str]):
        super().__init__(
            f"Unknown operation: {operation}. Supported operations: {', '.join(supported)}",
            code="UNKNOWN_OPERATION",
            category=ErrorCategory.UNKNOWN_OPERATION,
            details={"operation": operation},
        )


class ProtocolError(UiaBridgeError):
    """Malformed frame on the worker channel."""

    def __init__(self, message: str, raw: str | None = None):
        details = {"raw": raw[:200]} if raw else {}
        super().__init__(message, code="PROTOCOL_ERROR", category=ErrorCategory.PROTOCOL, details=details)


class OperationTimeoutError(UiaBridgeError):
    """Supervisor deadline expired before the worker answered."""

    def __init__(self, operation: str, timeout_seconds: float):
        super().__init__(
            f"{operation} timed out after {format_seconds(timeout_seconds)}s",
            code="TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"operation": operation, "timeoutSeconds": timeout_seconds},
        )


class WorkerCrashedError(UiaBridgeError):
    """Worker exited before producing a response."""

    def __init__(self, exit_code: int | None = None):
        super().__init__(
            "worker process exited unexpectedly",
            code="WORKER_CRASHED",
            category=ErrorCategory.CRASH,
            details={"exitCode": exit_code},
        )


class WorkerUnavailableError(UiaBridgeError):
    """No worker could be provided for the request."""

    def __init__(self, message: str):
        super().__init__(message, code="WORKER_UNAVAILABLE", category=ErrorCategory.UNAVAILABLE)


def format_seconds(value: float) -> str:
    """Render 5.0 as '5' and 0.5 as '0.5'."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"[a-zA-Z0-9]{32,}"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> tuple[str, ErrorCategory]:
    """
    Classify an exception and return (error_code, category).

    Our own errors carry their classification; builtin exceptions map onto
    the nearest category; everything else is INTERNAL.
    """
    if isinstance(exc, UiaBridgeError):
        return exc.code, exc.category

    if isinstance(exc, (TimeoutError, subprocess.TimeoutExpired)):
        return "TIMEOUT", ErrorCategory.TIMEOUT

    if isinstance(exc, FileNotFoundError):
        return "FILE_NOT_FOUND", ErrorCategory.NOT_FOUND

    if isinstance(exc, PermissionError):
        return "ACCESS_DENIED", ErrorCategory.PERMISSION

    if isinstance(exc, NotImplementedError):
        return "NOT_SUPPORTED", ErrorCategory.NOT_SUPPORTED

    if isinstance(exc, json.JSONDecodeError):
        return "JSON_PARSE_ERROR", ErrorCategory.PROTOCOL

    if isinstance(exc, ValueError):
        return "INVALID_VALUE", ErrorCategory.VALIDATION

    if isinstance(exc, KeyError):
        return "MISSING_KEY", ErrorCategory.VALIDATION

    exc_str = str(exc).lower()
    if "access denied" in exc_str or "access is denied" in exc_str:
        return "ACCESS_DENIED", ErrorCategory.PERMISSION

    if "not supported" in exc_str:
        return "NOT_SUPPORTED", ErrorCategory.NOT_SUPPORTED

    return "INTERNAL_ERROR", ErrorCategory.INTERNAL
