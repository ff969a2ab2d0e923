"""Typed request/response adapters over the generic envelope."""

from uiabridge.client.defaults import apply_configuration_defaults
from uiabridge.client.executor import TypedExecutor
from uiabridge.client.requests import (
    REQUEST_TYPES,
    ElementRequest,
    TypedRequest,
    WindowTargetRequest,
    request_type_for,
    typed_request_from_envelope,
)

__all__ = [
    "REQUEST_TYPES",
    "ElementRequest",
    "TypedExecutor",
    "TypedRequest",
    "WindowTargetRequest",
    "apply_configuration_defaults",
    "request_type_for",
    "typed_request_from_envelope",
]
