"""Signal delivery by raw process identifier.

These helpers address a process by PID alone, with no handle to validate
it. Once the original process exits and is reaped, the OS may hand its PID
to an unrelated process, and then:

* :func:`is_process_running` may report that unrelated process as running;
* every signalling function may deliver its signal to it.

Only use these functions with a PID obtained immediately before the call
from a source that guarantees the process has not been reaped yet. For
processes started by this library prefer :class:`procthread.ProcessController`,
which signals through the handle it owns and never outlives the reap.

Each signalling function re-checks existence before sending. That narrows
the race window; it does not close it.
"""

from __future__ import annotations

import logging
import os
import signal

import psutil
import tenacity

from .const import DEFAULT_WAIT_POLL_INTERVAL, DEFAULT_WAIT_TIMEOUT

logger = logging.getLogger(__name__)


def _is_defunct(pid: int) -> bool:
    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True
    except psutil.Error:
        return False


def is_process_running(pid: int) -> bool:
    """Probe ``pid`` with signal 0.

    False for non-positive PIDs, missing processes, processes this user may
    not signal, and zombies (exited but not yet reaped by their parent).
    """
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except OSError:
        return False
    return not _is_defunct(pid)


def _send(pid: int, sig: signal.Signals) -> bool:
    if not is_process_running(pid):
        return False
    try:
        os.kill(pid, sig)
    except OSError as exc:
        logger.debug("Failed to send %s to PID %d: %s", sig.name, pid, exc)
        return False
    logger.debug("Sent %s to PID %d", sig.name, pid)
    return True


def interrupt(pid: int) -> bool:
    """Send SIGINT (soft, catchable)."""
    return _send(pid, signal.SIGINT)


def terminate(pid: int) -> bool:
    """Send SIGTERM, the conventional graceful shutdown request."""
    return _send(pid, signal.SIGTERM)


def close(pid: int) -> bool:
    """Send SIGHUP. Many processes ignore it or reload instead of exiting."""
    return _send(pid, signal.SIGHUP)


def kill(pid: int) -> bool:
    """Send SIGKILL. Cannot be caught; the process gets no chance to clean up."""
    return _send(pid, signal.SIGKILL)


def _still_running(result: bool) -> bool:
    return result


def wait(
    pid: int,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    *,
    poll_interval: float = DEFAULT_WAIT_POLL_INTERVAL,
) -> bool:
    """Poll until ``pid`` is gone. Returns False if it is still there after ``timeout`` seconds."""

    retryer = tenacity.Retrying(
        stop=tenacity.stop_after_delay(max(0.0, timeout)),
        wait=tenacity.wait_fixed(poll_interval),
        retry=tenacity.retry_if_result(_still_running),
    )
    try:
        retryer(is_process_running, pid)
    except tenacity.RetryError:
        logger.debug("PID %d still running after %.2fs", pid, timeout)
        return False
    return True


def interrupt_and_wait(
    pid: int,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    *,
    poll_interval: float = DEFAULT_WAIT_POLL_INTERVAL,
) -> bool:
    """SIGINT then :func:`wait`. If the send fails, True only if the process is already gone."""
    if interrupt(pid):
        return wait(pid, timeout, poll_interval=poll_interval)
    return not is_process_running(pid)


def terminate_and_wait(
    pid: int,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    *,
    poll_interval: float = DEFAULT_WAIT_POLL_INTERVAL,
) -> bool:
    """SIGTERM then :func:`wait`. If the send fails, True only if the process is already gone."""
    if terminate(pid):
        return wait(pid, timeout, poll_interval=poll_interval)
    return not is_process_running(pid)


def close_and_wait(
    pid: int,
    timeout: float = DEFAULT_WAIT_TIMEOUT,
    *,
    poll_interval: float = DEFAULT_WAIT_POLL_INTERVAL,
) -> bool:
    """SIGHUP then :func:`wait`. Only useful for processes that exit on hangup."""
    if close(pid):
        return wait(pid, timeout, poll_interval=poll_interval)
    return not is_process_running(pid)


__all__ = [
    "close",
    "close_and_wait",
    "interrupt",
    "interrupt_and_wait",
    "is_process_running",
    "kill",
    "terminate",
    "terminate_and_wait",
    "wait",
]
