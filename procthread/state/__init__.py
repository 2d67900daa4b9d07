"""Runtime state for procthread controllers."""

from .context import (
    STATE_FAILED,
    STATE_RUNNING,
    STATE_SUSPENDED,
    STATE_TERMINATED,
    STATE_UNSTARTED,
    OutputBuffers,
    ProcessHandle,
    ThreadLifecycle,
)

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
