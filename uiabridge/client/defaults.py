"""Fill configured operation defaults into typed requests."""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel

from uiabridge.client.requests import TypedRequest
from uiabridge.config.schema import OperationDefaults

R = TypeVar("R", bound=TypedRequest)


def _lookup(defaults: BaseModel, path: str) -> Any:
    value: Any = defaults
    for part in path.split("."):
        value = getattr(value, part)
    return value


def apply_configuration_defaults(request: R, defaults: OperationDefaults | None) -> R:
    """
    Return a copy of ``request`` with configured defaults for omitted fields.

    Only fields the caller did not set (``model_fields_set``) are filled; an
    explicit value, including an explicit None, is kept.
    """
    if defaults is None or not request.config_defaults:
        return request
    updates = {
        field: _lookup(defaults, path)
        for field, path in request.config_defaults.items()
        if field not in request.model_fields_set
    }
    if not updates:
        return request
    return request.model_copy(update=updates)
