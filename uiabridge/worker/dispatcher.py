"""Resolve an operation name and run its handler behind the error boundary."""

from __future__ import annotations

import time
from typing import Any

from loguru import logger

from uiabridge.backends.base import AutomationBackend
from uiabridge.operations.base import OperationContext
from uiabridge.protocol.envelope import OperationRequest, OperationResponse
from uiabridge.protocol.serialization import safe_dict
from uiabridge.utils.exceptions import UiaBridgeError
from uiabridge.worker.error_boundary import (
    bridge_error_response,
    result_response,
    unhandled_exception_response,
    unknown_operation_response,
)
from uiabridge.worker.registry import OperationRegistry


class Dispatcher:
    """Runs one operation per call; ``dispatch`` never raises."""

    def __init__(self, registry: OperationRegistry, backend: AutomationBackend):
        self.registry = registry
        self.backend = backend
        self.context = OperationContext(backend=backend, registry=registry)

    def dispatch(self, name: str, parameters: dict[str, Any] | None = None) -> OperationResponse:
        operation = self.registry.get(name)
        if operation is None:
            return unknown_operation_response(operation=str(name), supported=self.registry.names)

        started = time.perf_counter()
        with logger.contextualize(operation=operation.name):
            try:
                result = operation.run(self.context, safe_dict(parameters))
                response = result_response(operation=operation.name, result=result)
            except UiaBridgeError as exc:
                response = bridge_error_response(operation=operation.name, exc=exc)
            except Exception as exc:
                response = unhandled_exception_response(operation=operation.name, exc=exc)
            self.context.operation_count += 1
            logger.debug(
                "Dispatched {} success={} in {:.1f}ms",
                operation.name,
                response.success,
                (time.perf_counter() - started) * 1000,
            )
        return response

    def dispatch_request(self, request: OperationRequest) -> OperationResponse:
        return self.dispatch(request.operation, request.parameters)
