"""Host side: worker supervision, pooling and cancellation."""

from uiabridge.host.pool import WorkerPool
from uiabridge.host.process import WorkerProcess
from uiabridge.host.supervisor import SupervisorStats, WorkerSupervisor, build_worker_command
from uiabridge.host.termination import CancellationStrategy, KillWorkerOnly, ProcessTreeKill

__all__ = [
    "CancellationStrategy",
    "KillWorkerOnly",
    "ProcessTreeKill",
    "SupervisorStats",
    "WorkerPool",
    "WorkerProcess",
    "WorkerSupervisor",
    "build_worker_command",
]
