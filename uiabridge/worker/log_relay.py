"""Worker log relay over stderr.

The worker replaces loguru's default handler with a sink that writes each
record as ``[UIA_LOG]{json}`` on stderr. The host reads those lines and logs
them again at their original level with the worker pid bound.
"""

from __future__ import annotations

import json
import sys
from typing import Any, TextIO

from loguru import logger

from uiabridge.protocol.serialization import to_jsonable

RELAY_PREFIX = "[UIA_LOG]"

_KNOWN_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def format_record(record: dict[str, Any]) -> str:
    """Render one loguru record as a relay line (without newline)."""
    extra = dict(record.get("extra") or {})
    operation_id = extra.pop("operation", None)
    payload: dict[str, Any] = {
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "source": f"{record['function']}:{record['line']}",
        "operationId": operation_id,
        "extra": to_jsonable(extra),
        "timestamp": record["time"].isoformat(),
    }
    if record.get("exception") is not None:
        exc_type, exc_value, _ = record["exception"]
        if exc_type is not None:
            payload["exception"] = f"{exc_type.__name__}: {exc_value}"
    return RELAY_PREFIX + json.dumps(payload, ensure_ascii=False, default=str)


class RelaySink:
    """Loguru sink writing relay lines to a text stream (stderr by default)."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def __call__(self, message: Any) -> None:
        stream = self._stream or sys.__stderr__
        if stream is None:
            return
        try:
            stream.write(format_record(message.record) + "\n")
            stream.flush()
        except (OSError, ValueError):
            # Host closed our stderr; nothing left to report to.
            pass


def install_relay_sink(level: str = "INFO", stream: TextIO | None = None) -> int:
    """Replace loguru handlers with the relay sink; return the handler id."""
    logger.remove()
    return logger.add(RelaySink(stream), level=level.upper(), enqueue=False, backtrace=False, diagnose=False)


def parse_relay_line(line: str) -> dict[str, Any] | None:
    """Decode a relay line, or None when the line is plain stderr text."""
    if not line.startswith(RELAY_PREFIX):
        return None
    try:
        payload = json.loads(line[len(RELAY_PREFIX):])
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or "message" not in payload:
        return None
    return payload


def relay_worker_line(line: str, worker_pid: int | None) -> None:
    """Log one worker stderr line in the host's logger."""
    text = line.rstrip("\r\n")
    if not text.strip():
        return
    bound = logger.bind(worker_pid=worker_pid)
    record = parse_relay_line(text)
    if record is None:
        bound.warning("[worker {} stderr] {}", worker_pid, text)
        return
    level = str(record.get("level") or "INFO").upper()
    if level not in _KNOWN_LEVELS:
        level = "INFO"
    if record.get("operationId"):
        bound = bound.bind(operation=record["operationId"])
    suffix = f" ({record['exception']})" if record.get("exception") else ""
    bound.log(level, "[worker {}] {}{}", worker_pid, record.get("message", ""), suffix)
