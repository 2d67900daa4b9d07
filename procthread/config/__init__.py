"""Configuration helpers for procthread."""

from .model import ThreadConfig
from .settings import (
    build_thread_config,
    child_environment,
    configure,
    get_config,
    load_thread_config,
    validate_thread_config,
)

__all__ = [
    "ThreadConfig",
    "build_thread_config",
    "child_environment",
    "configure",
    "get_config",
    "load_thread_config",
    "validate_thread_config",
]
