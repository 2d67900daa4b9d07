"""Data model for procthread configuration."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field

from ..const import (
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_JOIN_POLL_INTERVAL,
    DEFAULT_OUTPUT_BUFFER_LIMIT,
    RUNNER_MODULE,
)


@dataclass(slots=True, frozen=True)
class ThreadConfig:
    """Configuration shared by every controller in a process.

    ``runner_command`` replaces the whole runner invocation prefix.
    ``python_executable`` only replaces the interpreter used to launch the
    bundled runner, for hosts where ``sys.executable`` is not a usable CLI
    interpreter (embedded or frozen builds).
    """

    runner_command: tuple[str, ...] | None = None
    python_executable: str | None = None
    secret: bytes = field(repr=False, default=b"")
    join_poll_interval: float = DEFAULT_JOIN_POLL_INTERVAL
    output_buffer_limit: int = DEFAULT_OUTPUT_BUFFER_LIMIT
    debug_logging: bool = DEFAULT_DEBUG_LOGGING

    @property
    def signing_enabled(self) -> bool:
        return bool(self.secret)

    def resolved_runner(self) -> tuple[str, ...]:
        if self.runner_command:
            return tuple(self.runner_command)
        interpreter = self.python_executable or sys.executable or "python3"
        return (interpreter, "-m", RUNNER_MODULE)
