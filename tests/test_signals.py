"""Tests for raw-PID signalling against real child processes."""

from __future__ import annotations

import os
import subprocess
import sys
import time
from collections.abc import Iterator
from unittest.mock import patch

import psutil
import pytest

from procthread import signals

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]
HUP_IMMUNE = [
    sys.executable,
    "-c",
    "import signal, sys, time; signal.signal(signal.SIGHUP, signal.SIG_IGN); print('ready', flush=True); time.sleep(30)",
]


@pytest.fixture
def sleeper() -> Iterator[subprocess.Popen[bytes]]:
    proc = subprocess.Popen(SLEEPER)
    yield proc
    if proc.poll() is None:
        proc.kill()
    proc.wait()


@pytest.mark.parametrize("pid", [0, -1, -os.getpid()])
def test_non_positive_pids_are_never_running(pid: int) -> None:
    assert signals.is_process_running(pid) is False
    assert signals.terminate(pid) is False
    assert signals.kill(pid) is False


def test_current_process_is_running() -> None:
    assert signals.is_process_running(os.getpid())


def test_live_child_is_running(sleeper: subprocess.Popen[bytes]) -> None:
    assert signals.is_process_running(sleeper.pid)


def test_zombie_counts_as_gone(sleeper: subprocess.Popen[bytes]) -> None:
    assert signals.kill(sleeper.pid)

    # Unreaped until proc.wait(); is_process_running must still report it as gone.
    assert signals.wait(sleeper.pid, timeout=5.0, poll_interval=0.01)
    assert sleeper.returncode is None
    assert psutil.Process(sleeper.pid).status() == psutil.STATUS_ZOMBIE


def test_reaped_child_is_not_signalled(sleeper: subprocess.Popen[bytes]) -> None:
    sleeper.kill()
    sleeper.wait()

    assert signals.is_process_running(sleeper.pid) is False
    assert signals.interrupt(sleeper.pid) is False
    assert signals.terminate(sleeper.pid) is False
    assert signals.close(sleeper.pid) is False
    assert signals.kill(sleeper.pid) is False


def test_wait_times_out_on_live_process(sleeper: subprocess.Popen[bytes]) -> None:
    started = time.monotonic()

    assert signals.wait(sleeper.pid, timeout=0.3, poll_interval=0.02) is False
    assert time.monotonic() - started >= 0.3
    assert sleeper.poll() is None


@pytest.mark.parametrize(
    ("helper", "expected_returncode"),
    [
        (signals.terminate_and_wait, -15),
        (signals.close_and_wait, -1),
    ],
)
def test_signal_and_wait_helpers(sleeper: subprocess.Popen[bytes], helper, expected_returncode: int) -> None:
    assert helper(sleeper.pid, 5.0, poll_interval=0.01) is True
    assert sleeper.wait(timeout=5) == expected_returncode


def test_interrupt_and_wait(sleeper: subprocess.Popen[bytes]) -> None:
    assert signals.interrupt_and_wait(sleeper.pid, 5.0, poll_interval=0.01) is True
    assert sleeper.wait(timeout=5) != 0


def test_failed_send_reports_whether_process_is_gone(sleeper: subprocess.Popen[bytes]) -> None:
    sleeper.kill()
    sleeper.wait()

    assert signals.terminate_and_wait(sleeper.pid, 0.1) is True
    assert signals.interrupt_and_wait(sleeper.pid, 0.1) is True
    assert signals.close_and_wait(sleeper.pid, 0.1) is True


def test_ignored_hangup_times_out() -> None:
    proc = subprocess.Popen(HUP_IMMUNE, stdout=subprocess.PIPE)
    try:
        assert proc.stdout is not None
        assert proc.stdout.readline().strip() == b"ready"

        assert signals.close_and_wait(proc.pid, 0.3, poll_interval=0.02) is False
        assert proc.poll() is None
    finally:
        proc.kill()
        proc.wait()
        proc.stdout.close()


def test_send_failure_returns_false(sleeper: subprocess.Popen[bytes]) -> None:
    real_kill = os.kill

    def _deny(pid: int, sig: int) -> None:
        if sig != 0:
            raise PermissionError("denied")
        real_kill(pid, sig)

    with patch("procthread.signals.os.kill", side_effect=_deny):
        assert signals.terminate(sleeper.pid) is False
    assert sleeper.poll() is None


def test_access_denied_status_is_treated_as_running() -> None:
    with patch("procthread.signals.psutil.Process") as mock_process:
        mock_process.return_value.status.side_effect = psutil.AccessDenied(os.getpid())

        assert signals.is_process_running(os.getpid()) is True
