"""Request/response loop run by the worker process.

Reads one JSON request per line from a binary input stream and writes exactly
one JSON response line per non-blank request line. The loop owns no timeouts:
waiting on stdin is idle blocking, and deadlines are the supervisor's job.
"""

from __future__ import annotations

from enum import Enum
from typing import BinaryIO

from loguru import logger

from uiabridge.protocol.envelope import OperationResponse
from uiabridge.protocol.serialization import decode_request_line, encode_response_line
from uiabridge.utils.exceptions import ErrorCategory, ProtocolError
from uiabridge.worker.dispatcher import Dispatcher
from uiabridge.worker.error_boundary import protocol_error_response, unhandled_exception_response

DEFAULT_MAX_LINE_BYTES = 1024 * 1024

EXIT_OK = 0
EXIT_BROKEN_OUTPUT = 1
EXIT_FATAL_STARTUP = 2
EXIT_BROKEN_INPUT = 4

_DRAIN_CHUNK = 64 * 1024


class WorkerState(str, Enum):
    IDLE = "idle"
    READING = "reading"
    DISPATCHING = "dispatching"
    WRITING = "writing"
    SHUTDOWN = "shutdown"


class WorkerLoop:
    """Serve requests from ``input_stream`` until end-of-stream."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        input_stream: BinaryIO,
        output_stream: BinaryIO,
        *,
        max_line_bytes: int = DEFAULT_MAX_LINE_BYTES,
    ):
        if max_line_bytes <= 0:
            raise ValueError("max_line_bytes must be positive")
        self.dispatcher = dispatcher
        self._input = input_stream
        self._output = output_stream
        self.max_line_bytes = max_line_bytes
        self.state = WorkerState.IDLE
        self.handled = 0

    def run(self) -> int:
        """Loop until end-of-stream; return the process exit code."""
        logger.info("Worker loop started (backend={})", self.dispatcher.context.backend_name)
        while True:
            self.state = WorkerState.READING
            try:
                raw, oversized = self._read_line()
            except (OSError, ValueError) as exc:
                logger.error("Worker input stream failed: {}", exc)
                self.state = WorkerState.SHUTDOWN
                return EXIT_BROKEN_INPUT
            if raw is None:
                logger.info("End of input after {} request(s); worker exiting", self.handled)
                self.state = WorkerState.SHUTDOWN
                return EXIT_OK

            if oversized:
                response: OperationResponse | None = protocol_error_response(
                    exc=ProtocolError(f"Request line exceeds {self.max_line_bytes} bytes")
                )
            else:
                response = self.handle_line(raw)
            if response is None:
                self.state = WorkerState.IDLE
                continue

            self.state = WorkerState.WRITING
            try:
                self._write(response)
            except (BrokenPipeError, OSError, ValueError) as exc:
                logger.error("Worker output stream broken: {}", exc)
                self.state = WorkerState.SHUTDOWN
                return EXIT_BROKEN_OUTPUT
            self.handled += 1
            self.state = WorkerState.IDLE

    def handle_line(self, raw: bytes | str) -> OperationResponse | None:
        """Turn one request line into its response; None for blank lines."""
        try:
            text = raw.decode("utf-8-sig") if isinstance(raw, bytes) else raw
        except UnicodeDecodeError as exc:
            return protocol_error_response(exc=ProtocolError(f"Request line is not valid UTF-8: {exc.reason}"))
        if not text.strip():
            return None

        self.state = WorkerState.DISPATCHING
        try:
            request = decode_request_line(text)
        except ProtocolError as exc:
            return protocol_error_response(exc=exc)
        try:
            return self.dispatcher.dispatch_request(request)
        except Exception as exc:
            return unhandled_exception_response(operation=request.operation, exc=exc)

    def _read_line(self) -> tuple[bytes | None, bool]:
        line = self._input.readline(self.max_line_bytes + 1)
        if not line:
            return None, False
        if len(line) > self.max_line_bytes and not line.endswith(b"\n"):
            while True:
                rest = self._input.readline(_DRAIN_CHUNK)
                if not rest or rest.endswith(b"\n"):
                    break
            return line, True
        return line, False

    def _write(self, response: OperationResponse) -> None:
        try:
            encoded = encode_response_line(response)
        except (TypeError, ValueError) as exc:
            logger.error("Could not serialize response: {}", exc)
            encoded = encode_response_line(
                OperationResponse.fail(
                    f"response could not be serialized: {exc}",
                    category=ErrorCategory.INTERNAL,
                    code="SERIALIZATION_ERROR",
                )
            )
        self._output.write(encoded.encode("utf-8") + b"\n")
        self._output.flush()
