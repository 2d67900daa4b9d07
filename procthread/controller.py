"""Handle-owning control of one task running in a child process."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
import sys
import time
from pathlib import Path
from types import TracebackType
from typing import Any

from . import codec
from .command import build_command, format_command
from .config.model import ThreadConfig
from .config.settings import child_environment, get_config, validate_thread_config
from .const import ALREADY_GONE, DEFAULT_WAIT_TIMEOUT, JoinSentinel
from .errors import AlreadyStartedError, ProcthreadError, ThreadStartError
from .state.context import (
    STATE_SUSPENDED,
    OutputBuffers,
    ProcessHandle,
    ThreadLifecycle,
)
from .task import ProcessIdentity, Runnable

logger = logging.getLogger("procthread.controller")

_START_FAILURE_REAP_TIMEOUT = 2.0
_START_FAILURE_STDERR_TAIL = 2048

JoinResult = int | JoinSentinel | None


def _import_root(module_name: str) -> str | None:
    """Directory that has to be on ``sys.path`` for ``module_name`` to import."""

    module = sys.modules.get(module_name)
    filename = getattr(module, "__file__", None)
    if not filename:
        return None
    path = Path(filename).resolve()
    depth = module_name.count(".") + (1 if path.stem == "__init__" else 0)
    root = path.parent
    for _ in range(depth):
        root = root.parent
    return str(root)


class ProcessController:
    """Run ``task`` in a child process and drive it like a thread.

    The controller owns the child from spawn to reap. Every query and control
    call goes through the ``Popen`` handle, so none of them can reach another
    process once this one has been reaped. Operations on a controller with no
    live child return ``False``, ``b""``, ``None`` or :data:`ALREADY_GONE`
    rather than raising.

    Not thread-safe: each controller is meant to be driven by one caller.
    """

    def __init__(
        self,
        task: Runnable,
        namespace: str = "",
        name: str | None = None,
        tag: str | None = None,
        *,
        config: ThreadConfig | None = None,
    ) -> None:
        self._task = task
        self._identity = ProcessIdentity.for_task(task, namespace=namespace, name=name, tag=tag)
        self._config = validate_thread_config(config) if config is not None else get_config()
        self._lifecycle = ThreadLifecycle()
        self._buffers = OutputBuffers(limit=self._config.output_buffer_limit)
        self._handle: ProcessHandle | None = None
        self._pid: int | None = None
        self._returncode: int | None = None

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self._identity.namespace}/{self._identity.name}"
            f" pid={self._pid} state={self.state}>"
        )

    @property
    def pid(self) -> int | None:
        return self._pid

    @property
    def namespace(self) -> str:
        return self._identity.namespace

    @property
    def name(self) -> str:
        return self._identity.name

    @property
    def tag(self) -> str | None:
        return self._identity.tag

    @property
    def identity(self) -> ProcessIdentity:
        return self._identity

    @property
    def state(self) -> str:
        return self._lifecycle.state

    @property
    def returncode(self) -> int | None:
        """Exit code observed by :meth:`join`, ``None`` until then."""
        return self._returncode

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    def start(
        self,
        arguments: dict[str, Any] | None = None,
        debug: bool = False,
        output_target: str | os.PathLike[str] | None = None,
    ) -> int:
        """Spawn the runner, hand it the encoded task and return the child PID.

        With ``output_target`` set, stdout and stderr are both appended to that
        file instead of being piped back.
        """

        if self._lifecycle.started:
            raise AlreadyStartedError(f"{self!r} was already started")

        try:
            payload = codec.encode(self._task, self._config.secret or None)
        except ProcthreadError:
            self._lifecycle.trigger("spawn_failed")
            raise

        argv = build_command(
            self._identity,
            runner=self._config.resolved_runner(),
            arguments=arguments,
            debug=debug,
        )
        piped = output_target is None

        try:
            if piped:
                process = self._spawn(argv, subprocess.PIPE)
            else:
                with open(output_target, "ab") as sink:
                    process = self._spawn(argv, sink)
        except (OSError, ValueError) as exc:
            # ValueError: an argument or path holds a NUL byte.
            self._lifecycle.trigger("spawn_failed")
            logger.error("Failed to spawn %s: %s", format_command(argv), exc)
            raise ThreadStartError(f"Failed to spawn runner '{argv[0]}': {exc}") from exc

        handle = ProcessHandle(
            process=process,
            stdout=process.stdout if piped else None,
            stderr=process.stderr if piped else None,
        )

        try:
            assert process.stdin is not None
            process.stdin.write(payload)
            process.stdin.close()
        except BrokenPipeError:
            self._abort_start(handle, "exited before reading its payload")

        if process.poll() is not None:
            self._abort_start(handle, f"exited immediately with code {process.returncode}")

        handle.make_nonblocking()
        self._handle = handle
        self._pid = process.pid
        self._lifecycle.trigger("spawned")
        logger.info(
            "Started %s as PID %d: %s",
            self._identity.name,
            process.pid,
            format_command(argv),
        )
        return process.pid

    def _spawn(self, argv: tuple[str, ...], sink: Any) -> subprocess.Popen[bytes]:
        return subprocess.Popen(
            argv,
            stdin=subprocess.PIPE,
            stdout=sink,
            stderr=sink,
            env=self._child_environment(),
            close_fds=True,
        )

    def _child_environment(self) -> dict[str, str]:
        env = child_environment(self._config, os.environ)

        roots = [_import_root(type(self._task).__module__), _import_root(__package__ or "procthread")]
        search_path = [root for root in dict.fromkeys(roots) if root]
        existing = env.get("PYTHONPATH")
        if existing:
            search_path.append(existing)
        if search_path:
            env["PYTHONPATH"] = os.pathsep.join(search_path)
        return env

    def _abort_start(self, handle: ProcessHandle, reason: str) -> None:
        process = handle.process
        try:
            _, stderr = process.communicate(timeout=_START_FAILURE_REAP_TIMEOUT)
        except subprocess.TimeoutExpired:
            process.kill()
            _, stderr = process.communicate()
        handle.released = True
        self._lifecycle.trigger("spawn_failed")

        detail = ""
        if stderr:
            detail = ": " + stderr[-_START_FAILURE_STDERR_TAIL:].decode("utf-8", errors="replace").strip()
        logger.error("Runner for %s (PID %d) %s", self._identity.name, process.pid, reason)
        raise ThreadStartError(f"Runner for {self._identity.name} {reason}{detail}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_alive(self) -> bool:
        handle = self._handle
        if handle is None:
            return False
        if handle.poll() is None:
            return True
        self._lifecycle.trigger("exited")
        return False

    def join(self, timeout: float = 0, *, poll_interval: float | None = None) -> JoinResult:
        """Wait for the child to exit.

        Returns the exit code (``-N`` when killed by signal ``N``), ``None``
        when ``timeout`` elapsed first, or :data:`ALREADY_GONE` when this
        controller holds no process. ``timeout=0`` waits indefinitely. A
        timeout never affects the child itself.
        """

        handle = self._handle
        if handle is None:
            return ALREADY_GONE

        interval = poll_interval if poll_interval is not None else self._config.join_poll_interval
        deadline = time.monotonic() + timeout if timeout > 0 else None

        while True:
            self._pump(handle)
            returncode = handle.poll()
            if returncode is not None:
                return self._finish(handle, returncode)
            if deadline is None:
                time.sleep(interval)
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return None
            time.sleep(min(interval, remaining))

    def _finish(self, handle: ProcessHandle, returncode: int) -> int:
        self._collect(*handle.release())
        self._handle = None
        self._returncode = returncode
        self._lifecycle.trigger("exited")
        logger.info("%s (PID %d) exited with code %d", self._identity.name, handle.pid, returncode)
        return returncode

    def read_output(self) -> bytes:
        if self._handle is not None:
            self._pump(self._handle)
        return self._buffers.take_stdout()

    def read_error(self) -> bytes:
        if self._handle is not None:
            self._pump(self._handle)
        return self._buffers.take_stderr()

    def _pump(self, handle: ProcessHandle) -> None:
        self._collect(*handle.pump())

    def _collect(self, stdout_chunk: bytes, stderr_chunk: bytes) -> None:
        truncated_out, truncated_err = self._buffers.append_output(stdout_chunk, stderr_chunk)
        if truncated_out or truncated_err:
            logger.warning(
                "Output of %s (PID %s) exceeded %d buffered bytes; oldest data dropped",
                self._identity.name,
                self._pid,
                self._buffers.limit,
            )

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    def _send(self, sig: signal.Signals) -> bool:
        handle = self._handle
        if handle is None or not self.is_alive():
            return False
        try:
            handle.process.send_signal(sig)
        except OSError as exc:
            logger.debug("Failed to send %s to PID %d: %s", sig.name, handle.pid, exc)
            return False
        logger.debug("Sent %s to PID %d", sig.name, handle.pid)
        return True

    def pause(self) -> bool:
        """Suspend the child with SIGSTOP (uncatchable)."""
        if not self._send(signal.SIGSTOP):
            return False
        self._lifecycle.trigger("suspended")
        return True

    def resume(self) -> bool:
        """Continue a suspended child with SIGCONT."""
        if not self._send(signal.SIGCONT):
            return False
        self._lifecycle.trigger("continued")
        return True

    def interrupt(self) -> bool:
        return self._send(signal.SIGINT)

    def terminate(self) -> bool:
        return self._send(signal.SIGTERM)

    def kill(self) -> bool:
        return self._send(signal.SIGKILL)

    def interrupt_and_join(self, timeout: float = DEFAULT_WAIT_TIMEOUT) -> JoinResult:
        """SIGINT, then :meth:`join` with ``timeout``."""
        return self._signal_and_join(signal.SIGINT, timeout)

    def terminate_and_join(self, timeout: float = DEFAULT_WAIT_TIMEOUT) -> JoinResult:
        """SIGTERM, then :meth:`join` with ``timeout``."""
        return self._signal_and_join(signal.SIGTERM, timeout)

    def _signal_and_join(self, sig: signal.Signals, timeout: float) -> JoinResult:
        if self._handle is None:
            return ALREADY_GONE
        if self._send(sig) and self._lifecycle.state == STATE_SUSPENDED:
            # A stopped process only acts on the pending signal once continued.
            self.resume()
        return self.join(timeout)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Kill the child if it is still running, reap it and release its pipes."""
        if self._handle is None:
            return
        if self.kill():
            logger.warning("Killed %s (PID %s) on close", self._identity.name, self._pid)
        self.join()

    def __enter__(self) -> ProcessController:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


__all__ = ["JoinResult", "ProcessController"]
