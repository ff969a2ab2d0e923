"""Cancellation strategies for hung or misbehaving workers.

The only way to cancel an in-flight operation is to terminate the worker.
The default strategy kills the worker together with every process it
started, since native automation code may have spawned helpers that would
otherwise outlive it.
"""

from __future__ import annotations

import os
import signal
import subprocess
import sys
from typing import Protocol, runtime_checkable

from loguru import logger

from uiabridge.host.process import WorkerProcess


@runtime_checkable
class CancellationStrategy(Protocol):
    def cancel(self, worker: WorkerProcess, reason: str) -> None:
        """Stop ``worker`` and everything it started; must not raise."""
        ...


class ProcessTreeKill:
    """Kill the worker's whole process tree, falling back to killing the worker alone."""

    def __init__(self, wait_seconds: float = 2.0):
        self.wait_seconds = wait_seconds

    def cancel(self, worker: WorkerProcess, reason: str) -> None:
        pid = worker.pid
        if pid is None:
            return
        logger.warning("Killing worker {} process tree: {}", pid, reason)
        try:
            if sys.platform == "win32":
                self._taskkill(pid)
            elif hasattr(os, "killpg"):
                self._killpg(pid)
            else:
                worker.kill()
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("Process tree kill of worker {} failed ({}); killing the worker only", pid, exc)
            worker.kill()
        if worker.wait(self.wait_seconds) is None:
            worker.kill()
            if worker.wait(self.wait_seconds) is None:
                logger.error("Worker {} did not exit after kill", pid)

    @staticmethod
    def _killpg(pid: int) -> None:
        # Workers are session leaders, so their process group id is their pid.
        try:
            os.killpg(pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.debug("Process group {} already gone", pid)

    def _taskkill(self, pid: int) -> None:
        result = subprocess.run(
            ["taskkill", "/PID", str(pid), "/T", "/F"],
            capture_output=True,
            text=True,
            timeout=max(self.wait_seconds, 5.0),
        )
        if result.returncode not in (0, 128):
            raise OSError(f"taskkill exited {result.returncode}: {result.stderr.strip() or result.stdout.strip()}")


class KillWorkerOnly:
    """Kill just the worker process; child processes it spawned are left alone."""

    def __init__(self, wait_seconds: float = 2.0):
        self.wait_seconds = wait_seconds

    def cancel(self, worker: WorkerProcess, reason: str) -> None:
        logger.warning("Killing worker {}: {}", worker.pid, reason)
        worker.kill()
        worker.wait(self.wait_seconds)
