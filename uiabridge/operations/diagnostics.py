"""Built-in operations answered by the worker itself."""

from __future__ import annotations

import os
import time

from uiabridge import __version__
from uiabridge.operations.base import Operation, OperationContext, OperationParams, OperationResult


class Ping(Operation):
    name = "Ping"
    aliases = ("health",)
    description = "Liveness check; reports worker pid, backend and uptime"

    def execute(self, ctx: OperationContext, params: OperationParams) -> OperationResult:
        return OperationResult.success(
            {
                "pong": True,
                "pid": os.getpid(),
                "backend": ctx.backend_name,
                "version": __version__,
                "uptimeSeconds": round(time.monotonic() - ctx.started_at, 3),
                "operationCount": ctx.operation_count,
            }
        )


class GetSupportedOperations(Operation):
    name = "GetSupportedOperations"
    aliases = ("operations",)
    description = "Names, aliases and descriptions of every registered operation"

    def execute(self, ctx: OperationContext, params: OperationParams) -> OperationResult:
        if ctx.registry is None:
            return OperationResult.success({"operations": [], "count": 0})
        operations = [
            {"name": op.name, "aliases": list(op.aliases), "description": op.description}
            for op in ctx.registry.operations()
        ]
        return OperationResult.success({"operations": operations, "count": len(operations)})
