"""Supervisor owning one worker process.

WorkerSupervisor.execute sends one request, waits for one response line with
a hard deadline, and turns every way that can go wrong (spawn failure, hang,
crash, garbage on stdout) into a failure response. Callers never see a raw
exception from the worker or its backend.
"""

from __future__ import annotations

import asyncio
import math
import sys
import threading
import time
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from uiabridge.host.process import WorkerProcess, worker_environment
from uiabridge.host.termination import CancellationStrategy, ProcessTreeKill
from uiabridge.protocol.envelope import OperationRequest, OperationResponse
from uiabridge.protocol.serialization import decode_response_line, encode_request_line
from uiabridge.utils.exceptions import (
    ErrorCategory,
    OperationTimeoutError,
    ProtocolError,
    ValidationError,
    WorkerCrashedError,
    WorkerUnavailableError,
    sanitize_error_message,
)
from uiabridge.worker.log_relay import relay_worker_line

if TYPE_CHECKING:
    from uiabridge.config.schema import Config, WorkerConfig

MALFORMED_OUTPUT_MESSAGE = "malformed worker output"
NOT_RUNNING_MESSAGE = "worker process is not running"


def build_worker_command(worker: "WorkerConfig | None" = None) -> list[str]:
    """Command line that starts a worker for the given worker settings."""
    if worker is None:
        from uiabridge.config.schema import WorkerConfig

        worker = WorkerConfig()
    command = [
        worker.python_executable or sys.executable,
        "-m",
        "uiabridge.worker",
        "--backend",
        worker.backend,
        "--log-level",
        worker.log_level,
        "--max-line-bytes",
        str(worker.max_line_bytes),
    ]
    if worker.fixture_path:
        command += ["--fixture", worker.fixture_path]
    command += list(worker.extra_args)
    return command


@dataclass
class SupervisorStats:
    requests: int = 0
    successes: int = 0
    failures: int = 0
    timeouts: int = 0
    crashes: int = 0
    spawns: int = 0
    malformed: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class WorkerSupervisor:
    """
    Runs operations in an isolated worker process.

    One request is in flight at a time. On timeout the worker's process tree
    is killed; on crash or malformed output the worker is discarded. With
    ``auto_restart`` the next call spawns a fresh worker, otherwise calls fail
    with "worker process is not running" until ``restart()``.
    """

    def __init__(
        self,
        command: list[str] | None = None,
        *,
        default_timeout_seconds: float = 60.0,
        auto_restart: bool = True,
        restart_delay_seconds: float = 0.1,
        shutdown_grace_seconds: float = 3.0,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        cancellation: CancellationStrategy | None = None,
        relay_logs: bool = True,
        name: str = "worker",
    ):
        if default_timeout_seconds <= 0:
            raise ValueError("default_timeout_seconds must be positive")
        self.command = list(command) if command else build_worker_command()
        self.default_timeout_seconds = default_timeout_seconds
        self.auto_restart = auto_restart
        self.restart_delay_seconds = max(0.0, restart_delay_seconds)
        self.shutdown_grace_seconds = max(0.0, shutdown_grace_seconds)
        self.env = dict(env or {})
        self.cwd = cwd or None
        self.cancellation: CancellationStrategy = cancellation or ProcessTreeKill()
        self.relay_logs = relay_logs
        self.name = name
        self.stats = SupervisorStats()
        self._worker: WorkerProcess | None = None
        self._lock = threading.Lock()
        self._failed = False
        self._closed = False

    @classmethod
    def from_config(cls, config: "Config", *, name: str = "worker") -> "WorkerSupervisor":
        sup = config.supervisor
        return cls(
            build_worker_command(config.worker),
            default_timeout_seconds=sup.default_timeout_seconds,
            auto_restart=sup.auto_restart,
            restart_delay_seconds=sup.restart_delay_seconds,
            shutdown_grace_seconds=sup.shutdown_grace_seconds,
            env=config.env.vars or {},
            cwd=config.worker.cwd or None,
            cancellation=ProcessTreeKill(wait_seconds=sup.kill_wait_seconds),
            relay_logs=config.logging.relay_worker_logs,
            name=name,
        )

    # -- lifecycle -------------------------------------------------------

    @property
    def is_alive(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive

    @property
    def pid(self) -> int | None:
        worker = self._worker
        return worker.pid if worker is not None and worker.is_alive else None

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> "WorkerSupervisor":
        """Spawn the worker now instead of on the first request."""
        with self._lock:
            if self._closed:
                raise WorkerUnavailableError("supervisor is closed")
            self._ensure_worker()
        return self

    def restart(self) -> "WorkerSupervisor":
        """Replace the worker with a fresh one, clearing a previous failure."""
        with self._lock:
            if self._closed:
                raise WorkerUnavailableError("supervisor is closed")
            self._stop_worker("restart requested")
            self._failed = False
            self._ensure_worker()
        return self

    def close(self) -> None:
        """Close stdin, give the worker a grace period to exit, then kill its tree."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._stop_worker("supervisor closed")
        logger.debug("Supervisor {} closed: {}", self.name, self.stats.to_dict())

    def __enter__(self) -> "WorkerSupervisor":
        return self.start()

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _stop_worker(self, reason: str) -> None:
        worker = self._worker
        self._worker = None
        if worker is None:
            return
        worker.close_stdin()
        code = worker.wait(self.shutdown_grace_seconds)
        if code is None:
            self.cancellation.cancel(worker, reason)
        else:
            logger.debug("Worker {} exited with {} ({})", worker.pid, code, reason)
        worker.release()

    def _discard_worker(self, reason: str) -> int | None:
        """Kill the current worker after a failure and mark the supervisor failed."""
        worker = self._worker
        self._worker = None
        self._failed = True
        if worker is None:
            return None
        self.cancellation.cancel(worker, reason)
        code = worker.returncode
        worker.release()
        return code

    def _on_stderr_line(self, line: str, pid: int | None) -> None:
        if self.relay_logs:
            relay_worker_line(line, pid)
        elif line.strip():
            logger.debug("[worker {}] {}", pid, line.rstrip())

    def _ensure_worker(self) -> WorkerProcess:
        worker = self._worker
        if worker is not None and worker.is_alive:
            return worker
        if worker is not None:
            exit_code = self._discard_worker("worker exited while idle")
            logger.warning("Worker {} exited while idle (exit code {})", worker.pid, exit_code)
        if self._failed:
            if not self.auto_restart:
                raise WorkerUnavailableError(NOT_RUNNING_MESSAGE)
            if self.restart_delay_seconds:
                time.sleep(self.restart_delay_seconds)

        worker = WorkerProcess(
            self.command,
            env=worker_environment(self.env),
            cwd=self.cwd,
            on_stderr_line=self._on_stderr_line,
        )
        try:
            worker.spawn()
        except (OSError, ValueError) as exc:
            self._failed = True
            logger.error("Failed to start worker {}: {}", self.command, exc)
            raise WorkerUnavailableError(f"worker process could not be started: {exc}") from exc
        self._worker = worker
        self._failed = False
        self.stats.spawns += 1
        logger.info("Supervisor {} started worker pid={}", self.name, worker.pid)
        return worker

    # -- execution -------------------------------------------------------

    def execute(self, request: OperationRequest, timeout_seconds: float | None = None) -> OperationResponse:
        """Run one request in the worker; always returns a response."""
        timeout = self.default_timeout_seconds if timeout_seconds is None else timeout_seconds
        operation = request.operation
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or not math.isfinite(timeout) or timeout <= 0:
            return self._record(
                OperationResponse.from_error(
                    ValidationError(
                        f"timeoutSeconds must be a positive number for {operation}",
                        field="timeoutSeconds",
                        operation=operation,
                    )
                )
            )
        try:
            line = encode_request_line(request)
        except ValidationError as exc:
            return self._record(OperationResponse.from_error(exc))

        with self._lock:
            if self._closed:
                return self._record(OperationResponse.from_error(WorkerUnavailableError("supervisor is closed")))
            try:
                worker = self._ensure_worker()
            except WorkerUnavailableError as exc:
                return self._record(OperationResponse.from_error(exc))
            return self._record(self._round_trip(worker, operation, line, float(timeout)))

    async def execute_async(self, request: OperationRequest, timeout_seconds: float | None = None) -> OperationResponse:
        """``execute`` on a worker thread, for asyncio callers."""
        return await asyncio.to_thread(self.execute, request, timeout_seconds)

    def _round_trip(self, worker: WorkerProcess, operation: str, line: str, timeout: float) -> OperationResponse:
        try:
            return self._exchange(worker, operation, line, timeout)
        except Exception as exc:
            # The request may already be in the worker; its reply must never
            # reach the next caller.
            logger.exception("Unexpected supervisor error for {} on worker {}", operation, worker.pid)
            self._discard_worker(f"supervisor error: {type(exc).__name__}")
            return OperationResponse.fail(
                sanitize_error_message(f"{type(exc).__name__}: {exc}"),
                category=ErrorCategory.INTERNAL,
                code="SUPERVISOR_ERROR",
                exception_type=type(exc).__name__,
            )

    def _exchange(self, worker: WorkerProcess, operation: str, line: str, timeout: float) -> OperationResponse:
        for stray in worker.drain_unsolicited():
            logger.warning("Discarding unsolicited output from worker {}: {}", worker.pid, stray[:200])

        deadline = time.monotonic() + timeout
        try:
            worker.write_line(line, timeout)
        except TimeoutError:
            logger.warning("Worker {} did not accept {} within {}s", worker.pid, operation, timeout)
            return self._timed_out(operation, timeout)
        except OSError as exc:
            logger.warning("Writing to worker {} failed: {}", worker.pid, exc)
            return self._crashed(worker)

        try:
            raw = worker.read_line(max(0.0, deadline - time.monotonic()))
        except TimeoutError:
            return self._timed_out(operation, timeout)

        if raw is None:
            return self._crashed(worker)

        try:
            return decode_response_line(raw.decode("utf-8"))
        except (ProtocolError, UnicodeDecodeError) as exc:
            self.stats.malformed += 1
            preview = raw[:200].decode("utf-8", errors="replace")
            logger.error("Malformed output from worker {}: {!r} ({})", worker.pid, preview, exc)
            self._discard_worker("malformed output")
            return OperationResponse.fail(
                MALFORMED_OUTPUT_MESSAGE,
                category=ErrorCategory.PROTOCOL,
                code="MALFORMED_OUTPUT",
                extra={"raw": preview},
            )

    def _timed_out(self, operation: str, timeout: float) -> OperationResponse:
        self.stats.timeouts += 1
        self._discard_worker(f"{operation} exceeded {timeout}s")
        return OperationResponse.from_error(OperationTimeoutError(operation, timeout))

    def _crashed(self, worker: WorkerProcess) -> OperationResponse:
        exit_code = worker.wait(1.0)
        self.stats.crashes += 1
        self._discard_worker("worker exited unexpectedly")
        logger.error("Worker {} exited unexpectedly (exit code {})", worker.pid, exit_code)
        return OperationResponse.from_error(WorkerCrashedError(exit_code))

    def _record(self, response: OperationResponse) -> OperationResponse:
        self.stats.requests += 1
        if response.success:
            self.stats.successes += 1
        else:
            self.stats.failures += 1
            logger.debug("Supervisor {} failure: {}", self.name, sanitize_error_message(response.error or ""))
        return response
