"""Run typed requests through a supervisor or a pool."""

from __future__ import annotations

import asyncio
from typing import Protocol, TypeVar

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from uiabridge.client.defaults import apply_configuration_defaults
from uiabridge.client.requests import TypedRequest
from uiabridge.config.schema import OperationDefaults
from uiabridge.protocol.envelope import OperationRequest, OperationResponse
from uiabridge.utils.exceptions import ErrorCategory

M = TypeVar("M", bound=BaseModel)


class EnvelopeExecutor(Protocol):
    def execute(self, request: OperationRequest, timeout_seconds: float | None = None) -> OperationResponse:
        ...


class TypedExecutor:
    """Apply defaults, convert to an envelope and forward to ``executor``."""

    def __init__(self, executor: EnvelopeExecutor, defaults: OperationDefaults | None = None):
        self.executor = executor
        self.defaults = defaults

    def prepare(self, request: TypedRequest) -> TypedRequest:
        return apply_configuration_defaults(request, self.defaults)

    def execute(self, request: TypedRequest, timeout_seconds: float | None = None) -> OperationResponse:
        prepared = self.prepare(request)
        deadline = timeout_seconds if timeout_seconds is not None else prepared.deadline_seconds()
        return self.executor.execute(prepared.to_envelope(), deadline)

    def execute_typed(
        self,
        request: TypedRequest,
        model: type[M],
        timeout_seconds: float | None = None,
    ) -> OperationResponse:
        """Like ``execute``, with ``data`` validated into ``model`` on success."""
        response = self.execute(request, timeout_seconds)
        if not response.success:
            return response
        try:
            return OperationResponse.ok(model.model_validate(response.data))
        except PydanticValidationError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            logger.warning("Result of {} did not match {}: {}", request.operation, model.__name__, first)
            return OperationResponse.fail(
                f"unexpected result for {request.operation}: {first.get('msg', 'invalid data')}",
                category=ErrorCategory.PROTOCOL,
                code="RESULT_MISMATCH",
                extra={"model": model.__name__},
            )

    async def execute_async(self, request: TypedRequest, timeout_seconds: float | None = None) -> OperationResponse:
        return await asyncio.to_thread(self.execute, request, timeout_seconds)
