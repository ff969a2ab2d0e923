"""Handle on one worker child process and its stdio pipes."""

from __future__ import annotations

import os
import queue
import subprocess
import sys
import threading
from typing import Callable

from loguru import logger

# Queue marker for end of the worker's stdout.
_EOF = object()


def bounded_wait(timeout: float | None) -> float | None:
    """Clamp a wait to what threading primitives accept."""
    if timeout is None:
        return None
    return min(max(0.0, timeout), threading.TIMEOUT_MAX)


class WorkerProcess:
    """
    A spawned worker with line-oriented pipes.

    A daemon thread reads stdout lines into a FIFO queue so the supervisor can
    wait on them with a deadline; a second thread forwards stderr lines to
    ``on_stderr_line``. The worker is started in its own session (POSIX) or
    process group (Windows) so its whole tree can be killed.
    """

    def __init__(
        self,
        command: list[str],
        *,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        on_stderr_line: Callable[[str, int | None], None] | None = None,
    ):
        self.command = list(command)
        self.env = env
        self.cwd = cwd or None
        self._on_stderr_line = on_stderr_line
        self._proc: subprocess.Popen[bytes] | None = None
        self._lines: queue.Queue[object] = queue.Queue()
        self._eof = False
        self._threads: list[threading.Thread] = []
        self._writer: threading.Thread | None = None

    def spawn(self) -> None:
        """Start the child; raises OSError when it cannot be launched."""
        if self._proc is not None:
            raise RuntimeError("worker process already spawned")
        kwargs: dict = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NEW_PROCESS_GROUP
        else:
            kwargs["start_new_session"] = True
        self._proc = subprocess.Popen(
            self.command,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=self.cwd,
            env=self.env,
            bufsize=-1,
            **kwargs,
        )
        if not self._proc.stdout or not self._proc.stdin or not self._proc.stderr:
            raise OSError("worker stdio is unavailable")
        for target, name in ((self._reader_loop, "stdout"), (self._stderr_loop, "stderr")):
            thread = threading.Thread(target=target, name=f"uiabridge-worker-{self._proc.pid}-{name}", daemon=True)
            thread.start()
            self._threads.append(thread)
        logger.debug("Spawned worker pid={} command={}", self._proc.pid, " ".join(self.command))

    def _reader_loop(self) -> None:
        proc = self._proc
        if not proc or not proc.stdout:
            return
        try:
            for line in iter(proc.stdout.readline, b""):
                self._lines.put(line)
        except (OSError, ValueError) as exc:
            logger.debug("Worker {} stdout reader stopped: {}", proc.pid, exc)
        finally:
            self._lines.put(_EOF)

    def _stderr_loop(self) -> None:
        proc = self._proc
        if not proc or not proc.stderr:
            return
        try:
            for raw in iter(proc.stderr.readline, b""):
                text = raw.decode("utf-8", errors="replace")
                if self._on_stderr_line is not None:
                    self._on_stderr_line(text, proc.pid)
                elif text.strip():
                    logger.debug("[worker {}] {}", proc.pid, text.rstrip())
        except (OSError, ValueError) as exc:
            logger.debug("Worker {} stderr reader stopped: {}", proc.pid, exc)

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def returncode(self) -> int | None:
        return self._proc.poll() if self._proc else None

    @property
    def is_alive(self) -> bool:
        return self._proc is not None and self._proc.poll() is None and not self._eof

    def write_line(self, text: str, timeout: float | None = None) -> None:
        """
        Write one line and flush.

        The write runs on a helper thread so a worker that stops reading stdin
        cannot block the caller past ``timeout``. Raises TimeoutError when the
        line is not taken in time and OSError (BrokenPipeError) if the worker
        is gone.
        """
        if not self._proc or not self._proc.stdin:
            raise BrokenPipeError("worker stdin is not open")
        if self._writer is not None and self._writer.is_alive():
            raise TimeoutError("an earlier write to the worker is still blocked")
        stdin = self._proc.stdin
        data = text.encode("utf-8") + b"\n"
        errors: list[Exception] = []

        def _write() -> None:
            try:
                stdin.write(data)
                stdin.flush()
            except (OSError, ValueError) as exc:
                errors.append(exc)

        writer = threading.Thread(target=_write, name=f"uiabridge-worker-{self._proc.pid}-stdin", daemon=True)
        self._writer = writer
        writer.start()
        writer.join(bounded_wait(timeout))
        if writer.is_alive():
            raise TimeoutError(f"worker did not accept input within {timeout}s")
        if errors:
            exc = errors[0]
            if isinstance(exc, OSError):
                raise exc
            raise BrokenPipeError(str(exc)) from exc

    def read_line(self, timeout: float) -> bytes | None:
        """
        Next stdout line, or None at end-of-stream.

        Raises TimeoutError if nothing arrives within ``timeout`` seconds.
        """
        if self._eof:
            return None
        try:
            item = self._lines.get(timeout=bounded_wait(timeout))
        except queue.Empty as exc:
            raise TimeoutError(f"no worker output within {timeout}s") from exc
        if item is _EOF:
            self._eof = True
            return None
        return item  # type: ignore[return-value]

    def drain_unsolicited(self) -> list[bytes]:
        """Remove and return any stdout lines already queued."""
        drained: list[bytes] = []
        while not self._eof:
            try:
                item = self._lines.get_nowait()
            except queue.Empty:
                break
            if item is _EOF:
                self._eof = True
                break
            drained.append(item)  # type: ignore[arg-type]
        return drained

    def close_stdin(self) -> None:
        if self._writer is not None and self._writer.is_alive():
            # Closing would wait on the blocked writer; the pipe goes with the process.
            return
        if self._proc and self._proc.stdin and not self._proc.stdin.closed:
            try:
                self._proc.stdin.close()
            except OSError:
                pass

    def wait(self, timeout: float | None = None) -> int | None:
        """Wait for exit; return the exit code, or None if still running."""
        if not self._proc:
            return None
        try:
            return self._proc.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def kill(self) -> None:
        """Kill only the worker process itself."""
        if self._proc and self._proc.poll() is None:
            try:
                self._proc.kill()
            except OSError as exc:
                logger.debug("Kill of worker {} failed: {}", self._proc.pid, exc)

    def release(self) -> None:
        """Close pipe handles once the process is gone and its readers are done."""
        if not self._proc:
            return
        self.close_stdin()
        streams = (self._proc.stdout, self._proc.stderr)
        for thread, stream in zip(self._threads, streams):
            thread.join(timeout=1.0)
            if thread.is_alive() or stream is None:
                # A surviving grandchild still holds the pipe open.
                continue
            try:
                stream.close()
            except OSError:
                pass


def worker_environment(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Environment for a worker: the host's, plus UTF-8 stdio and ``extra``."""
    env = os.environ.copy()
    env["PYTHONIOENCODING"] = "utf-8"
    env["PYTHONUNBUFFERED"] = "1"
    env.update({str(k): str(v) for k, v in (extra or {}).items()})
    return env
