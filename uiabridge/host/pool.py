"""Pool of independently supervised workers."""

from __future__ import annotations

import asyncio
import queue
from typing import TYPE_CHECKING, Any, Callable

from loguru import logger

from uiabridge.host.supervisor import WorkerSupervisor
from uiabridge.protocol.envelope import OperationRequest, OperationResponse
from uiabridge.utils.exceptions import WorkerUnavailableError, format_seconds

if TYPE_CHECKING:
    from uiabridge.config.schema import Config


class WorkerPool:
    """
    N supervisors, each serving one request at a time.

    ``execute`` borrows an idle supervisor for the duration of one request.
    There is no ordering between requests that land on different workers.
    """

    def __init__(
        self,
        size: int = 1,
        factory: Callable[[int], WorkerSupervisor] | None = None,
        *,
        acquire_timeout_seconds: float = 30.0,
    ):
        if size < 1:
            raise ValueError("pool size must be at least 1")
        make = factory or (lambda index: WorkerSupervisor(name=f"worker-{index}"))
        self.supervisors: list[WorkerSupervisor] = [make(i) for i in range(size)]
        self.acquire_timeout_seconds = acquire_timeout_seconds
        self._idle: queue.Queue[WorkerSupervisor] = queue.Queue()
        for supervisor in self.supervisors:
            self._idle.put(supervisor)
        self._closed = False

    @classmethod
    def from_config(cls, config: "Config") -> "WorkerPool":
        return cls(
            max(1, config.supervisor.pool_size),
            lambda index: WorkerSupervisor.from_config(config, name=f"worker-{index}"),
            acquire_timeout_seconds=config.supervisor.acquire_timeout_seconds,
        )

    @property
    def size(self) -> int:
        return len(self.supervisors)

    @property
    def idle_count(self) -> int:
        return self._idle.qsize()

    def start(self) -> "WorkerPool":
        for supervisor in self.supervisors:
            supervisor.start()
        return self

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for supervisor in self.supervisors:
            try:
                supervisor.close()
            except Exception as exc:
                logger.warning("Closing {} failed: {}", supervisor.name, exc)

    def __enter__(self) -> "WorkerPool":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def stats(self) -> dict[str, Any]:
        per_worker = {s.name: s.stats.to_dict() for s in self.supervisors}
        totals: dict[str, int] = {}
        for counters in per_worker.values():
            for key, value in counters.items():
                totals[key] = totals.get(key, 0) + value
        return {"size": self.size, "idle": self.idle_count, "totals": totals, "workers": per_worker}

    def execute(self, request: OperationRequest, timeout_seconds: float | None = None) -> OperationResponse:
        if self._closed:
            return OperationResponse.from_error(WorkerUnavailableError("worker pool is closed"))
        try:
            supervisor = self._idle.get(timeout=self.acquire_timeout_seconds)
        except queue.Empty:
            logger.warning("No idle worker for {} within {}s", request.operation, self.acquire_timeout_seconds)
            return OperationResponse.from_error(
                WorkerUnavailableError(f"no worker available within {format_seconds(self.acquire_timeout_seconds)}s")
            )
        try:
            return supervisor.execute(request, timeout_seconds)
        finally:
            self._idle.put(supervisor)

    async def execute_async(self, request: OperationRequest, timeout_seconds: float | None = None) -> OperationResponse:
        return await asyncio.to_thread(self.execute, request, timeout_seconds)
