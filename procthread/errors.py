"""Exception hierarchy for procthread.

Only faults the caller cannot express as a return value are raised. Signal
delivery failures, join timeouts and operations on a stale controller are
reported through ``False``, ``b""``, ``None`` or ``ALREADY_GONE`` instead.
"""

from __future__ import annotations


class ProcthreadError(Exception):
    """Base class for every error raised by procthread."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ThreadStartError(ProcthreadError):
    """The child process could not be created or exited right after spawn."""


class AlreadyStartedError(ProcthreadError):
    """``start`` was called on a controller that already owns a process."""


class ConfigurationError(ProcthreadError):
    """Invalid configuration values, or the global config was set twice."""


class CodecError(ProcthreadError):
    """Base class for payload encoding and decoding failures."""


class PayloadDecodeError(CodecError):
    """The payload is not a well-formed task envelope."""


class UnknownTaskError(CodecError):
    """The payload names a task type that is not registered or importable."""


class SignatureMismatchError(CodecError):
    """The payload signature is missing or does not match the secret."""


__all__ = [
    "AlreadyStartedError",
    "CodecError",
    "ConfigurationError",
    "PayloadDecodeError",
    "ProcthreadError",
    "SignatureMismatchError",
    "ThreadStartError",
    "UnknownTaskError",
]
