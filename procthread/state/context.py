"""Per-controller runtime state: lifecycle machine and owned process handle."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import IO, TYPE_CHECKING, Any

from transitions import Machine

from ..const import PIPE_READ_CHUNK

logger = logging.getLogger("procthread.state")

STATE_UNSTARTED = "UNSTARTED"
STATE_RUNNING = "RUNNING"
STATE_SUSPENDED = "SUSPENDED"
STATE_TERMINATED = "TERMINATED"
STATE_FAILED = "FAILED"


class ThreadLifecycle:
    """Controller-level state machine.

    ``SUSPENDED`` is only known for pause/resume issued through the owning
    controller; a stop signal sent from elsewhere is invisible here.
    """

    state: str

    def __init__(self) -> None:
        self._machine = Machine(
            model=self,
            states=[
                STATE_UNSTARTED,
                STATE_RUNNING,
                STATE_SUSPENDED,
                STATE_TERMINATED,
                STATE_FAILED,
            ],
            initial=STATE_UNSTARTED,
            model_attribute="state",
            auto_transitions=False,
            ignore_invalid_triggers=True,
        )
        self._machine.add_transition("spawned", STATE_UNSTARTED, STATE_RUNNING)
        self._machine.add_transition("spawn_failed", STATE_UNSTARTED, STATE_FAILED)
        self._machine.add_transition("suspended", STATE_RUNNING, STATE_SUSPENDED)
        self._machine.add_transition("continued", STATE_SUSPENDED, STATE_RUNNING)
        self._machine.add_transition("exited", [STATE_RUNNING, STATE_SUSPENDED], STATE_TERMINATED)

    if TYPE_CHECKING:
        def trigger(self, event: str, *args: Any, **kwargs: Any) -> bool:
            """FSM trigger placeholder."""
            ...

    @property
    def started(self) -> bool:
        return self.state != STATE_UNSTARTED


def _read_available(stream: IO[bytes], pid: int) -> tuple[bytes, bool]:
    """Read whatever a non-blocking pipe holds. Returns ``(data, eof)``."""
    chunks: list[bytes] = []
    fd = stream.fileno()
    while True:
        try:
            chunk = os.read(fd, PIPE_READ_CHUNK)
        except BlockingIOError:
            return b"".join(chunks), False
        except OSError:
            logger.debug("Error reading process pipe for PID %d", pid, exc_info=True)
            return b"".join(chunks), True
        if not chunk:
            return b"".join(chunks), True
        chunks.append(chunk)


@dataclass
class ProcessHandle:
    """The live child process plus its output pipes.

    ``stdout``/``stderr`` are ``None`` when output goes to a file, and are
    closed and dropped individually once they reach EOF.
    """

    process: subprocess.Popen[bytes]
    stdout: IO[bytes] | None = None
    stderr: IO[bytes] | None = None
    released: bool = field(default=False, init=False)

    @property
    def pid(self) -> int:
        return self.process.pid

    def poll(self) -> int | None:
        return self.process.poll()

    def make_nonblocking(self) -> None:
        for stream in (self.stdout, self.stderr):
            if stream is not None:
                os.set_blocking(stream.fileno(), False)

    def pump(self) -> tuple[bytes, bytes]:
        """Collect pending output from both pipes without blocking."""
        stdout_chunk = b""
        stderr_chunk = b""
        if self.stdout is not None:
            stdout_chunk, eof = _read_available(self.stdout, self.pid)
            if eof:
                self.stdout = self._close_stream(self.stdout)
        if self.stderr is not None:
            stderr_chunk, eof = _read_available(self.stderr, self.pid)
            if eof:
                self.stderr = self._close_stream(self.stderr)
        return stdout_chunk, stderr_chunk

    def release(self) -> tuple[bytes, bytes]:
        """Drain and close the pipes. Only the first call does any work."""
        if self.released:
            return b"", b""
        self.released = True
        tail = self.pump()
        self.stdout = self._close_stream(self.stdout)
        self.stderr = self._close_stream(self.stderr)
        stdin = self.process.stdin
        if stdin is not None and not stdin.closed:
            self._close_stream(stdin)
        return tail

    def _close_stream(self, stream: IO[bytes] | None) -> None:
        if stream is None:
            return None
        try:
            stream.close()
        except OSError:
            logger.debug("Error closing pipe for PID %d", self.pid, exc_info=True)
        return None


@dataclass
class OutputBuffers:
    """Output captured from a child but not yet handed to the caller."""

    limit: int = 0
    stdout_buffer: bytearray = field(default_factory=bytearray)
    stderr_buffer: bytearray = field(default_factory=bytearray)

    def append_output(self, stdout_chunk: bytes, stderr_chunk: bytes) -> tuple[bool, bool]:
        truncated_stdout = _append_with_limit(self.stdout_buffer, stdout_chunk, self.limit)
        truncated_stderr = _append_with_limit(self.stderr_buffer, stderr_chunk, self.limit)
        return truncated_stdout, truncated_stderr

    def take_stdout(self) -> bytes:
        return _take(self.stdout_buffer)

    def take_stderr(self) -> bytes:
        return _take(self.stderr_buffer)


def _append_with_limit(buffer: bytearray, chunk: bytes, limit: int) -> bool:
    """Append ``chunk``, keeping only the newest ``limit`` bytes when ``limit`` is set."""
    if not chunk:
        return False
    buffer += chunk
    overflow = len(buffer) - limit
    if limit <= 0 or overflow <= 0:
        return False
    del buffer[:overflow]
    return True


def _take(buffer: bytearray) -> bytes:
    data = bytes(buffer)
    buffer.clear()
    return data


__all__ = [
    "OutputBuffers",
    "ProcessHandle",
    "STATE_FAILED",
    "STATE_RUNNING",
    "STATE_SUSPENDED",
    "STATE_TERMINATED",
    "STATE_UNSTARTED",
    "ThreadLifecycle",
]
