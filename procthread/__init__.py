"""Run tasks in child processes and control them like threads."""

__version__ = "1.0.0"

import logging

from . import signals
from .config import ThreadConfig, configure, get_config, load_thread_config
from .const import ALREADY_GONE, JoinSentinel
from .controller import ProcessController
from .errors import (
    AlreadyStartedError,
    CodecError,
    ConfigurationError,
    PayloadDecodeError,
    ProcthreadError,
    SignatureMismatchError,
    ThreadStartError,
    UnknownTaskError,
)
from .task import ProcessIdentity, Runnable, TaskArgs, register_task

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ALREADY_GONE",
    "AlreadyStartedError",
    "CodecError",
    "ConfigurationError",
    "JoinSentinel",
    "PayloadDecodeError",
    "ProcessController",
    "ProcessIdentity",
    "ProcthreadError",
    "Runnable",
    "SignatureMismatchError",
    "TaskArgs",
    "ThreadConfig",
    "ThreadStartError",
    "UnknownTaskError",
    "configure",
    "get_config",
    "load_thread_config",
    "register_task",
    "signals",
]
