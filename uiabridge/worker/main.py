"""Worker process entry point.

Usage: python -m uiabridge.worker [--backend memory|uia|auto] [--fixture PATH]
       [--log-level LEVEL] [--max-line-bytes N]

File descriptor 1 belongs to the protocol. Before anything else runs, the
original stdout is duplicated for protocol output and fd 1 is pointed at
stderr, so stray prints (including from native code) cannot corrupt the
channel.
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import BinaryIO, Sequence

from loguru import logger

from uiabridge.backends import BACKEND_NAMES, create_backend
from uiabridge.worker.dispatcher import Dispatcher
from uiabridge.worker.log_relay import install_relay_sink
from uiabridge.worker.loop import DEFAULT_MAX_LINE_BYTES, EXIT_FATAL_STARTUP, WorkerLoop
from uiabridge.worker.registry import build_default_registry


def _claim_protocol_streams() -> tuple[BinaryIO, BinaryIO]:
    """Return (input, output) binary streams and redirect stdout to stderr."""
    if sys.stdin is None or sys.stdout is None or sys.stderr is None:
        raise OSError("stdin, stdout and stderr must all be available")
    sys.stdout.flush()
    try:
        protocol_fd = os.dup(sys.stdout.fileno())
        os.dup2(sys.stderr.fileno(), sys.stdout.fileno())
        output: BinaryIO = os.fdopen(protocol_fd, "wb", buffering=0)
    except (AttributeError, OSError, ValueError):
        # No real descriptors (embedded interpreter); fall back to the buffer.
        output = sys.stdout.buffer
    sys.stdout = sys.stderr
    return sys.stdin.buffer, output


def run_worker(
    backend: str = "auto",
    fixture: str | None = None,
    log_level: str = "INFO",
    max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
) -> int:
    """Start the worker and serve until end-of-stream; return the exit code."""
    install_relay_sink(log_level)
    try:
        input_stream, output_stream = _claim_protocol_streams()
    except OSError as exc:
        logger.critical("Worker cannot open its protocol streams: {}", exc)
        return EXIT_FATAL_STARTUP

    try:
        automation = create_backend(backend, fixture or None)
    except Exception as exc:
        logger.opt(exception=exc).critical("Worker failed to create backend {!r}: {}", backend, exc)
        return EXIT_FATAL_STARTUP

    registry = build_default_registry()
    logger.info("Worker {} ready: backend={} operations={}", os.getpid(), automation.name, len(registry))
    loop = WorkerLoop(Dispatcher(registry, automation), input_stream, output_stream, max_line_bytes=max_line_bytes)
    try:
        return loop.run()
    finally:
        try:
            automation.close()
        except Exception as exc:
            logger.warning("Backend close failed: {}", exc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m uiabridge.worker", description="uiabridge worker process")
    parser.add_argument("--backend", choices=BACKEND_NAMES, default="auto", help="Automation backend")
    parser.add_argument("--fixture", default=None, help="JSON element tree for the memory backend")
    parser.add_argument("--log-level", default="INFO", help="Minimum level relayed to the host")
    parser.add_argument(
        "--max-line-bytes",
        type=int,
        default=DEFAULT_MAX_LINE_BYTES,
        help="Reject request lines longer than this",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.max_line_bytes <= 0:
        print("--max-line-bytes must be positive", file=sys.stderr)
        return EXIT_FATAL_STARTUP
    return run_worker(
        backend=args.backend,
        fixture=args.fixture,
        log_level=args.log_level,
        max_line_bytes=args.max_line_bytes,
    )
