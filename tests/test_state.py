"""Tests for the controller state machine and output buffers."""

from __future__ import annotations

import subprocess
import sys

from procthread.state import (
    STATE_FAILED,
    STATE_RUNNING,
    STATE_SUSPENDED,
    STATE_TERMINATED,
    STATE_UNSTARTED,
    OutputBuffers,
    ProcessHandle,
    ThreadLifecycle,
)


def test_lifecycle_happy_path() -> None:
    lifecycle = ThreadLifecycle()
    assert lifecycle.state == STATE_UNSTARTED
    assert not lifecycle.started

    lifecycle.trigger("spawned")
    lifecycle.trigger("suspended")
    assert lifecycle.state == STATE_SUSPENDED
    lifecycle.trigger("continued")
    assert lifecycle.state == STATE_RUNNING
    lifecycle.trigger("exited")

    assert lifecycle.state == STATE_TERMINATED


def test_lifecycle_terminal_states_ignore_triggers() -> None:
    lifecycle = ThreadLifecycle()
    lifecycle.trigger("spawn_failed")

    for event in ("spawned", "suspended", "continued", "exited"):
        lifecycle.trigger(event)

    assert lifecycle.state == STATE_FAILED
    assert lifecycle.started


def test_suspended_process_can_exit() -> None:
    lifecycle = ThreadLifecycle()
    lifecycle.trigger("spawned")
    lifecycle.trigger("suspended")

    lifecycle.trigger("exited")

    assert lifecycle.state == STATE_TERMINATED


def test_output_buffers_take_and_clear() -> None:
    buffers = OutputBuffers()
    buffers.append_output(b"ab", b"x")
    buffers.append_output(b"cd", b"")

    assert buffers.take_stdout() == b"abcd"
    assert buffers.take_stdout() == b""
    assert buffers.take_stderr() == b"x"
    assert buffers.take_stderr() == b""


def test_output_buffers_limit_drops_oldest() -> None:
    buffers = OutputBuffers(limit=3)

    assert buffers.append_output(b"ab", b"") == (False, False)
    assert buffers.append_output(b"cde", b"wxyz") == (True, True)

    assert buffers.take_stdout() == b"cde"
    assert buffers.take_stderr() == b"xyz"


def test_handle_pumps_and_releases_once() -> None:
    proc = subprocess.Popen(
        [sys.executable, "-c", "import sys; sys.stdout.write('out'); sys.stderr.write('err')"],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    handle = ProcessHandle(process=proc, stdout=proc.stdout, stderr=proc.stderr)
    handle.make_nonblocking()
    proc.wait(timeout=10)

    out, err = handle.release()

    assert (out, err) == (b"out", b"err")
    assert handle.released
    assert handle.stdout is None and handle.stderr is None
    assert proc.stdin.closed
    assert handle.release() == (b"", b"")
