import io
import sys

import pytest
from loguru import logger

from uiabridge.worker.log_relay import RELAY_PREFIX, install_relay_sink, parse_relay_line, relay_worker_line


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def captured(restore_logger):
    records = []
    logger.remove()
    logger.add(lambda message: records.append(message.record), level="TRACE")
    return records


def test_relay_sink_writes_prefixed_json(restore_logger):
    stream = io.StringIO()
    install_relay_sink("DEBUG", stream)
    with logger.contextualize(operation="InvokeElement"):
        logger.bind(elementId="OkButton").warning("clicked {}", "OK")
    logger.trace("below threshold")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith(RELAY_PREFIX)
    record = parse_relay_line(lines[0])
    assert record["level"] == "WARNING"
    assert record["message"] == "clicked OK"
    assert record["operationId"] == "InvokeElement"
    assert record["extra"] == {"elementId": "OkButton"}
    assert ":" in record["source"]


def test_relay_sink_includes_exception_summary(restore_logger):
    stream = io.StringIO()
    install_relay_sink("INFO", stream)
    try:
        raise KeyError("missing")
    except KeyError:
        logger.exception("lookup failed")
    record = parse_relay_line(stream.getvalue().splitlines()[0])
    assert record["level"] == "ERROR"
    assert record["exception"].startswith("KeyError")


@pytest.mark.parametrize("line", ["plain text", RELAY_PREFIX + "{broken", RELAY_PREFIX + "[1]", RELAY_PREFIX + '{"level": "INFO"}'])
def test_parse_relay_line_rejects_non_records(line):
    assert parse_relay_line(line) is None


def test_relay_worker_line_reemits_with_worker_pid(captured):
    line = RELAY_PREFIX + '{"level": "ERROR", "message": "backend died", "operationId": "Ping", "exception": "RuntimeError: x"}\n'
    relay_worker_line(line, 4321)
    assert len(captured) == 1
    record = captured[0]
    assert record["level"].name == "ERROR"
    assert record["message"] == "[worker 4321] backend died (RuntimeError: x)"
    assert record["extra"]["worker_pid"] == 4321
    assert record["extra"]["operation"] == "Ping"


def test_relay_worker_line_plain_stderr_and_unknown_level(captured):
    relay_worker_line("Fatal Python error: oops\n", 7)
    relay_worker_line(RELAY_PREFIX + '{"level": "LOUD", "message": "odd"}', 7)
    relay_worker_line("   \n", 7)
    assert [r["level"].name for r in captured] == ["WARNING", "INFO"]
    assert captured[0]["message"] == "[worker 7 stderr] Fatal Python error: oops"
