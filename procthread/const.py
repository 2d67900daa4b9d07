"""Shared constants for procthread components."""

from __future__ import annotations

import enum
from typing import Final

RUNNER_MODULE: Final[str] = "procthread.runner"

ENV_RUNNER: Final[str] = "PROCTHREAD_RUNNER"
ENV_PYTHON: Final[str] = "PROCTHREAD_PYTHON"
ENV_SECRET: Final[str] = "PROCTHREAD_SECRET"
ENV_SECRET_HEX: Final[str] = "PROCTHREAD_SECRET_HEX"
ENV_PREFIX: Final[str] = "PROCTHREAD_"
ENV_JOIN_POLL_INTERVAL: Final[str] = "PROCTHREAD_JOIN_POLL_INTERVAL"
ENV_OUTPUT_LIMIT: Final[str] = "PROCTHREAD_OUTPUT_LIMIT"
ENV_DEBUG: Final[str] = "PROCTHREAD_DEBUG"

DEFAULT_JOIN_POLL_INTERVAL: Final[float] = 0.05
DEFAULT_WAIT_POLL_INTERVAL: Final[float] = 0.05
DEFAULT_WAIT_TIMEOUT: Final[float] = 10.0
DEFAULT_OUTPUT_BUFFER_LIMIT: Final[int] = 0
DEFAULT_DEBUG_LOGGING: Final[bool] = False

MIN_SECRET_LEN: Final[int] = 16
PLACEHOLDER_SECRET: Final[bytes] = b"changeme"

PIPE_READ_CHUNK: Final[int] = 65536

ARG_PREFIX: Final[str] = "--arg-"

RUNNER_EXIT_OK: Final[int] = 0
RUNNER_EXIT_TASK_FAILED: Final[int] = 1
RUNNER_EXIT_REJECTED: Final[int] = 2
RUNNER_EXIT_INTERRUPTED: Final[int] = 130


class JoinSentinel(enum.Enum):
    """Non-integer results of :meth:`ProcessController.join`."""

    ALREADY_GONE = "already-gone"


ALREADY_GONE: Final = JoinSentinel.ALREADY_GONE

__all__ = [
    "ALREADY_GONE",
    "ARG_PREFIX",
    "DEFAULT_DEBUG_LOGGING",
    "DEFAULT_JOIN_POLL_INTERVAL",
    "DEFAULT_OUTPUT_BUFFER_LIMIT",
    "DEFAULT_WAIT_POLL_INTERVAL",
    "DEFAULT_WAIT_TIMEOUT",
    "ENV_DEBUG",
    "ENV_JOIN_POLL_INTERVAL",
    "ENV_OUTPUT_LIMIT",
    "ENV_PYTHON",
    "ENV_RUNNER",
    "ENV_PREFIX",
    "ENV_SECRET",
    "ENV_SECRET_HEX",
    "JoinSentinel",
    "MIN_SECRET_LEN",
    "PIPE_READ_CHUNK",
    "PLACEHOLDER_SECRET",
    "RUNNER_EXIT_INTERRUPTED",
    "RUNNER_EXIT_OK",
    "RUNNER_EXIT_REJECTED",
    "RUNNER_EXIT_TASK_FAILED",
    "RUNNER_MODULE",
]
