"""Supervisor behavior against real worker processes."""

import math
import os
import signal
import sys
import time
from pathlib import Path

import pytest
from loguru import logger

from uiabridge.config.schema import Config
from uiabridge.host.supervisor import (
    MALFORMED_OUTPUT_MESSAGE,
    NOT_RUNNING_MESSAGE,
    WorkerSupervisor,
    build_worker_command,
)
from uiabridge.host.termination import KillWorkerOnly
from uiabridge.protocol import ERROR_DETAILS_KEY, OperationRequest
from uiabridge.utils.exceptions import ErrorCategory

pytestmark = pytest.mark.subprocess


def _wait_until(predicate, timeout=10.0, interval=0.05):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def _process_gone(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return True
    except PermissionError:
        return False
    # Orphans may linger as zombies when nothing reaps them inside a container.
    try:
        state = Path(f"/proc/{pid}/stat").read_text().rsplit(")", 1)[1].split()[0]
    except (OSError, IndexError):
        return True
    return state == "Z"


def _fake_worker(tmp_path, body: str) -> list[str]:
    script = tmp_path / "fake_worker.py"
    script.write_text("import sys\n" + body, encoding="utf-8")
    return [sys.executable, str(script)]


def test_invoke_round_trip(make_supervisor):
    supervisor = make_supervisor()
    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "OkButton"}))
    assert response.to_payload() == {"success": True, "data": "Element invoked successfully", "error": None}
    assert supervisor.is_alive
    assert supervisor.stats.spawns == 1


def test_worker_is_long_lived_and_keeps_state(make_supervisor):
    supervisor = make_supervisor()
    first = supervisor.execute(OperationRequest("Ping"))
    assert supervisor.execute(OperationRequest("SetValue", {"elementId": "NameBox", "value": "kept"})).success
    value = supervisor.execute(OperationRequest("GetValue", {"elementId": "NameBox"}))
    last = supervisor.execute(OperationRequest("Ping"))
    assert value.data["value"] == "kept"
    assert first.data["pid"] == last.data["pid"] == supervisor.pid
    assert last.data["operationCount"] == 3
    assert supervisor.stats.requests == 4
    assert supervisor.stats.spawns == 1


def test_unknown_operation_does_not_cost_the_worker(make_supervisor):
    supervisor = make_supervisor()
    pid = supervisor.start().pid
    response = supervisor.execute(OperationRequest("Bogus"))
    assert response.error.startswith("Unknown operation: Bogus. Supported operations: ")
    assert supervisor.pid == pid


def test_unhandled_backend_exception_keeps_worker(make_supervisor):
    supervisor = make_supervisor()
    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "ErrorButton"}))
    assert response.success is False
    assert response.error.startswith("RuntimeError: ")
    assert response.to_payload()[ERROR_DETAILS_KEY]["exceptionType"] == "RuntimeError"
    assert supervisor.execute(OperationRequest("Ping")).success
    assert supervisor.stats.spawns == 1


def test_timeout_kills_worker_and_next_call_respawns(make_supervisor):
    supervisor = make_supervisor()
    old_pid = supervisor.start().pid

    started = time.monotonic()
    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "HangButton"}), timeout_seconds=1.0)
    elapsed = time.monotonic() - started

    assert response.success is False
    assert response.error == "Invoke timed out after 1s"
    assert response.category is ErrorCategory.TIMEOUT
    assert elapsed < 10
    assert supervisor.stats.timeouts == 1
    assert _wait_until(lambda: _process_gone(old_pid))

    ping = supervisor.execute(OperationRequest("Ping"))
    assert ping.success
    assert ping.data["pid"] != old_pid
    assert supervisor.stats.spawns == 2


def test_crash_is_reported_and_worker_replaced(make_supervisor):
    supervisor = make_supervisor()
    old_pid = supervisor.start().pid
    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "CrashButton"}))
    assert response.success is False
    assert response.error == "worker process exited unexpectedly"
    assert response.category is ErrorCategory.CRASH
    assert response.details["exitCode"] == 3
    assert supervisor.stats.crashes == 1

    ping = supervisor.execute(OperationRequest("Ping"))
    assert ping.success
    assert ping.data["pid"] != old_pid


@pytest.mark.skipif(sys.platform == "win32", reason="signals differ on Windows")
def test_worker_killed_while_idle_is_replaced(make_supervisor):
    supervisor = make_supervisor()
    old_pid = supervisor.start().pid
    os.kill(old_pid, signal.SIGKILL)
    assert _wait_until(lambda: not supervisor.is_alive)

    ping = supervisor.execute(OperationRequest("Ping"))
    assert ping.success
    assert ping.data["pid"] != old_pid


def test_without_auto_restart_failures_are_sticky_until_restart(make_supervisor):
    supervisor = make_supervisor(auto_restart=False)
    crash = supervisor.execute(OperationRequest("Invoke", {"elementId": "CrashButton"}))
    assert crash.error == "worker process exited unexpectedly"

    for _ in range(2):
        response = supervisor.execute(OperationRequest("Ping"))
        assert response.success is False
        assert response.error == NOT_RUNNING_MESSAGE
        assert response.category is ErrorCategory.UNAVAILABLE

    supervisor.restart()
    assert supervisor.execute(OperationRequest("Ping")).success


def test_malformed_output_recycles_worker(tmp_path, make_supervisor):
    command = _fake_worker(
        tmp_path,
        "for line in sys.stdin:\n"
        "    sys.stdout.write('this is not json\\n')\n"
        "    sys.stdout.flush()\n",
    )
    supervisor = make_supervisor(command)
    response = supervisor.execute(OperationRequest("Ping"), timeout_seconds=10)
    assert response.success is False
    assert response.error == MALFORMED_OUTPUT_MESSAGE
    assert response.category is ErrorCategory.PROTOCOL
    assert response.details["raw"] == "this is not json\n"
    assert supervisor.stats.malformed == 1

    supervisor.execute(OperationRequest("Ping"), timeout_seconds=10)
    assert supervisor.stats.spawns == 2


def test_unsolicited_output_is_discarded_before_next_request(tmp_path, make_supervisor):
    command = _fake_worker(
        tmp_path,
        "import json\n"
        "for n, line in enumerate(sys.stdin):\n"
        "    sys.stdout.write(json.dumps({'success': True, 'data': n, 'error': None}) + '\\n')\n"
        "    sys.stdout.write(json.dumps({'success': True, 'data': 'stray', 'error': None}) + '\\n')\n"
        "    sys.stdout.flush()\n",
    )
    supervisor = make_supervisor(command)
    assert supervisor.execute(OperationRequest("Ping"), timeout_seconds=10).data == 0
    time.sleep(0.5)
    assert supervisor.execute(OperationRequest("Ping"), timeout_seconds=10).data == 1


def test_spawn_failure_is_a_failure_response(tmp_path, make_supervisor):
    supervisor = make_supervisor([str(tmp_path / "no-such-interpreter")])
    response = supervisor.execute(OperationRequest("Ping"))
    assert response.success is False
    assert response.error.startswith("worker process could not be started: ")
    assert response.category is ErrorCategory.UNAVAILABLE
    assert supervisor.pid is None


@pytest.mark.parametrize("timeout", [0, -1, math.nan, math.inf, True, "5"])
def test_invalid_timeout_rejected_without_spawning(make_supervisor, timeout):
    supervisor = make_supervisor()
    response = supervisor.execute(OperationRequest("Ping"), timeout_seconds=timeout)
    assert response.success is False
    assert response.error == "timeoutSeconds must be a positive number for Ping"
    assert supervisor.stats.spawns == 0


def test_unserializable_parameters_rejected_without_spawning(make_supervisor):
    supervisor = make_supervisor()
    response = supervisor.execute(OperationRequest("SetValue", {"elementId": "NameBox", "value": object()}))
    assert response.success is False
    assert response.category is ErrorCategory.VALIDATION
    assert supervisor.stats.spawns == 0


def test_very_large_timeout_is_waited_out_not_raised(make_supervisor):
    supervisor = make_supervisor()
    pid = supervisor.start().pid
    slow = OperationRequest("WaitForInputIdle", {"elementId": "OkButton", "timeoutMilliseconds": 1500})

    response = supervisor.execute(slow, timeout_seconds=1e10)
    assert response.success is False
    assert "window pattern" in response.error

    ping = supervisor.execute(OperationRequest("Ping"))
    assert ping.success
    assert ping.data["pid"] == pid


def test_unexpected_supervisor_error_discards_worker(monkeypatch, make_supervisor):
    supervisor = make_supervisor()
    old_pid = supervisor.start().pid

    def _broken_read(timeout):
        raise RuntimeError("reader exploded")

    monkeypatch.setattr(supervisor._worker, "read_line", _broken_read)
    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "OkButton"}))
    assert response.success is False
    assert response.category is ErrorCategory.INTERNAL
    assert response.error == "RuntimeError: reader exploded"
    assert _wait_until(lambda: _process_gone(old_pid))

    ping = supervisor.execute(OperationRequest("Ping"))
    assert ping.success
    assert ping.data["pid"] != old_pid


def test_worker_that_never_reads_stdin_times_out(make_supervisor):
    sleeper = [sys.executable, "-c", "import time; time.sleep(60)"]
    supervisor = make_supervisor(command=sleeper)
    request = OperationRequest("Ping", {"blob": "x" * (1024 * 1024)})

    started = time.monotonic()
    response = supervisor.execute(request, timeout_seconds=1.0)
    elapsed = time.monotonic() - started

    assert response.success is False
    assert response.error == "Ping timed out after 1s"
    assert response.category is ErrorCategory.TIMEOUT
    assert elapsed < 10
    assert supervisor.stats.timeouts == 1
    assert supervisor.stats.crashes == 0


def test_closed_supervisor_refuses_work(make_supervisor):
    supervisor = make_supervisor()
    pid = supervisor.start().pid
    supervisor.close()
    assert supervisor.closed
    assert _wait_until(lambda: _process_gone(pid))
    response = supervisor.execute(OperationRequest("Ping"))
    assert response.error == "supervisor is closed"
    supervisor.close()


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX process groups")
def test_timeout_kills_helper_processes_too(tmp_path, make_supervisor):
    pid_file = tmp_path / "helper.pid"
    supervisor = make_supervisor(env={"UIABRIDGE_FAULT_PID_FILE": str(pid_file)})
    assert supervisor.execute(OperationRequest("Ping")).success

    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "SpawnHangButton"}), timeout_seconds=5.0)
    assert response.category is ErrorCategory.TIMEOUT

    assert pid_file.exists()
    helper_pid = int(pid_file.read_text(encoding="utf-8"))
    assert _wait_until(lambda: _process_gone(helper_pid))


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
def test_kill_worker_only_leaves_helpers_running(tmp_path, make_supervisor):
    pid_file = tmp_path / "helper.pid"
    supervisor = make_supervisor(
        env={"UIABRIDGE_FAULT_PID_FILE": str(pid_file)},
        cancellation=KillWorkerOnly(),
    )
    response = supervisor.execute(OperationRequest("Invoke", {"elementId": "SpawnHangButton"}), timeout_seconds=3.0)
    assert response.category is ErrorCategory.TIMEOUT

    helper_pid = int(pid_file.read_text(encoding="utf-8"))
    try:
        assert not _process_gone(helper_pid)
        assert supervisor.execute(OperationRequest("Ping")).success
    finally:
        os.kill(helper_pid, signal.SIGKILL)


def test_worker_logs_are_relayed_with_pid(make_supervisor):
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    try:
        supervisor = make_supervisor()
        pid = supervisor.start().pid
        assert supervisor.execute(OperationRequest("Ping")).success
        assert _wait_until(
            lambda: any(r["extra"].get("worker_pid") == pid and "[worker" in r["message"] for r in records)
        )
    finally:
        logger.remove(sink_id)


def test_context_manager_and_stats(make_supervisor):
    with make_supervisor() as supervisor:
        supervisor.execute(OperationRequest("Ping"))
        supervisor.execute(OperationRequest("Bogus"))
    assert supervisor.closed
    assert supervisor.stats.to_dict() == {
        "requests": 2,
        "successes": 1,
        "failures": 1,
        "timeouts": 0,
        "crashes": 0,
        "spawns": 1,
        "malformed": 0,
    }


async def _ping_async(supervisor):
    return await supervisor.execute_async(OperationRequest("Ping"))


@pytest.mark.asyncio
async def test_execute_async(make_supervisor):
    supervisor = make_supervisor()
    response = await _ping_async(supervisor)
    assert response.success
    assert response.data["backend"] == "memory"


def test_build_worker_command_from_config():
    cfg = Config()
    cfg.worker.backend = "memory"
    cfg.worker.fixture_path = "desk.json"
    cfg.worker.extra_args = ["--extra"]
    command = build_worker_command(cfg.worker)
    assert command[0] == sys.executable
    assert command[1:3] == ["-m", "uiabridge.worker"]
    assert command[command.index("--backend") + 1] == "memory"
    assert command[command.index("--fixture") + 1] == "desk.json"
    assert command[-1] == "--extra"


def test_invalid_default_timeout():
    with pytest.raises(ValueError):
        WorkerSupervisor(default_timeout_seconds=0)
