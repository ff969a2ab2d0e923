import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from uiabridge.config.schema import Config
from uiabridge.host.pool import WorkerPool
from uiabridge.protocol import OperationRequest
from uiabridge.utils.exceptions import ErrorCategory

pytestmark = pytest.mark.subprocess

_SLOW = OperationRequest(
    "WaitForWindowState",
    {"windowTitle": "Sample App", "windowState": "Maximized", "timeoutSeconds": 2.0},
)


def _wait_until(predicate, timeout=10.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return predicate()


def test_pool_serves_requests_on_independent_workers(make_supervisor):
    with WorkerPool(2, lambda i: make_supervisor(name=f"w{i}")) as pool:
        pids = {s.pid for s in pool.supervisors}
        assert len(pids) == 2 and None not in pids

        with ThreadPoolExecutor(max_workers=1) as executor:
            slow = executor.submit(pool.execute, _SLOW)
            assert _wait_until(lambda: pool.idle_count == 1)
            ping = pool.execute(OperationRequest("Ping"))
            assert ping.success
            assert ping.data["pid"] in pids
            assert not slow.done()
            slow_response = slow.result(timeout=30)

        # the handler's own timeout is reported, the worker survives
        assert slow_response.category is ErrorCategory.TIMEOUT
        assert slow_response.error == "WaitForWindowState timed out after 2s"
        assert {s.pid for s in pool.supervisors} == pids

        stats = pool.stats()
        assert stats["size"] == 2
        assert stats["idle"] == 2
        assert stats["totals"]["requests"] == 2
        assert set(stats["workers"]) == {"w0", "w1"}


def test_acquire_timeout_when_all_workers_busy(make_supervisor):
    pool = WorkerPool(1, lambda i: make_supervisor(name="only"), acquire_timeout_seconds=0.2)
    try:
        pool.start()
        done = threading.Event()

        def _busy():
            pool.execute(_SLOW)
            done.set()

        thread = threading.Thread(target=_busy)
        thread.start()
        assert _wait_until(lambda: pool.idle_count == 0)
        response = pool.execute(OperationRequest("Ping"))
        assert response.success is False
        assert response.error == "no worker available within 0.2s"
        assert response.category is ErrorCategory.UNAVAILABLE
        thread.join(timeout=30)
        assert done.is_set()
        assert pool.execute(OperationRequest("Ping")).success
    finally:
        pool.close()


def test_crash_in_one_worker_leaves_the_pool_usable(make_supervisor):
    with WorkerPool(1, lambda i: make_supervisor(name="w")) as pool:
        crash = pool.execute(OperationRequest("Invoke", {"elementId": "CrashButton"}))
        assert crash.category is ErrorCategory.CRASH
        assert pool.execute(OperationRequest("Ping")).success
        assert pool.idle_count == 1


def test_closed_pool_refuses_work(make_supervisor):
    pool = WorkerPool(1, lambda i: make_supervisor(name="w"))
    pool.close()
    response = pool.execute(OperationRequest("Ping"))
    assert response.error == "worker pool is closed"
    pool.close()


@pytest.mark.asyncio
async def test_pool_execute_async(make_supervisor):
    pool = WorkerPool(1, lambda i: make_supervisor(name="w"))
    try:
        response = await pool.execute_async(OperationRequest("GetDesktopWindows"))
        assert response.success
        assert response.data["count"] == 2
    finally:
        pool.close()


def test_pool_from_config_sizes_and_names():
    cfg = Config()
    cfg.supervisor.pool_size = 3
    cfg.supervisor.acquire_timeout_seconds = 1.5
    pool = WorkerPool.from_config(cfg)
    try:
        assert pool.size == 3
        assert pool.acquire_timeout_seconds == 1.5
        assert [s.name for s in pool.supervisors] == ["worker-0", "worker-1", "worker-2"]
        assert all(not s.is_alive for s in pool.supervisors)
    finally:
        pool.close()


def test_pool_size_must_be_positive():
    with pytest.raises(ValueError):
        WorkerPool(0)
