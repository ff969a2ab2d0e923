"""Pytest hooks and fixtures."""

import os
import sys
from pathlib import Path

import pytest

from uiabridge.backends.memory import MemoryBackend
from uiabridge.host.supervisor import WorkerSupervisor
from uiabridge.worker.dispatcher import Dispatcher
from uiabridge.worker.registry import build_default_registry

REPO_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "subprocess: spawns real worker processes",
    )


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def dispatcher(backend):
    return Dispatcher(build_default_registry(), backend)


@pytest.fixture
def worker_env():
    """Environment that lets a child interpreter import uiabridge from this checkout."""
    existing = os.environ.get("PYTHONPATH", "")
    return {"PYTHONPATH": os.pathsep.join(p for p in (str(REPO_ROOT), existing) if p)}


@pytest.fixture
def worker_command():
    return [sys.executable, "-m", "uiabridge.worker", "--backend", "memory", "--log-level", "DEBUG"]


@pytest.fixture
def make_supervisor(worker_command, worker_env):
    created: list[WorkerSupervisor] = []

    def _make(command=None, **kwargs):
        env = dict(worker_env)
        env.update(kwargs.pop("env", {}) or {})
        kwargs.setdefault("default_timeout_seconds", 20.0)
        kwargs.setdefault("restart_delay_seconds", 0.0)
        kwargs.setdefault("shutdown_grace_seconds", 2.0)
        supervisor = WorkerSupervisor(command or worker_command, env=env, **kwargs)
        created.append(supervisor)
        return supervisor

    yield _make
    for supervisor in created:
        supervisor.close()
