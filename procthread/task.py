"""Task abstraction and task type registry.

A task is a plain data-holding ``msgspec.Struct`` subclass with a single
``run(args)`` entry point. Its fields are the only state that crosses the
process boundary, so resources (sockets, open files, locks) must be created
inside ``run``.

Task types are resolved by name on the runner side, which keeps decoding a
closed lookup instead of arbitrary object unmarshalling::

    @register_task
    class Resize(Runnable):
        path: str
        width: int = 640

        def run(self, args: TaskArgs) -> None:
            ...
"""

from __future__ import annotations

import importlib
import logging
import threading
from typing import TypeVar

import msgspec

from .errors import UnknownTaskError

logger = logging.getLogger(__name__)

TaskArgs = dict[str, str | bool]

T = TypeVar("T", bound=type)

_registry_lock = threading.Lock()
_registry: dict[str, type] = {}


class Runnable(msgspec.Struct):
    """Base class for tasks executed in a child process."""

    def run(self, args: TaskArgs) -> None:
        raise NotImplementedError(f"{type(self).__name__} must implement run(args)")


class ProcessIdentity(msgspec.Struct, frozen=True):
    """Descriptive metadata passed to the runner for observability."""

    name: str
    namespace: str = ""
    tag: str | None = None

    @classmethod
    def for_task(
        cls,
        task: object,
        namespace: str = "",
        name: str | None = None,
        tag: str | None = None,
    ) -> ProcessIdentity:
        return cls(name=name if name is not None else type(task).__name__, namespace=namespace, tag=tag)


def task_type_name(cls: type) -> str:
    return f"{cls.__module__}:{cls.__qualname__}"


def register_task(cls: T) -> T:
    """Register ``cls`` so payloads naming it can be decoded. Usable as a decorator."""

    if not callable(getattr(cls, "run", None)):
        raise TypeError(f"{cls!r} does not define run(args)")
    if "<locals>" in cls.__qualname__:
        raise TypeError(f"{cls!r} is defined inside a function and cannot be resolved by the runner")
    if cls.__module__ == "__main__":
        raise TypeError(f"{cls!r} lives in __main__; move it to an importable module")
    key = task_type_name(cls)
    with _registry_lock:
        existing = _registry.get(key)
        if existing is not None and existing is not cls:
            logger.warning("Task type %s re-registered; replacing previous definition", key)
        _registry[key] = cls
    return cls


def is_registered(cls: type) -> bool:
    with _registry_lock:
        return _registry.get(task_type_name(cls)) is cls


def resolve_task_type(type_name: str) -> type:
    """Return the registered class for ``type_name``.

    On a miss the defining module is imported once, which runs its
    ``@register_task`` decorators, and the lookup is retried.
    """

    with _registry_lock:
        cls = _registry.get(type_name)
    if cls is not None:
        return cls

    module_name, sep, _ = type_name.partition(":")
    if not sep or not module_name:
        raise UnknownTaskError(f"Malformed task type name '{type_name}'")
    try:
        importlib.import_module(module_name)
    except ImportError as exc:
        raise UnknownTaskError(f"Cannot import module for task type '{type_name}': {exc}") from exc

    with _registry_lock:
        cls = _registry.get(type_name)
    if cls is None:
        raise UnknownTaskError(f"Task type '{type_name}' is not registered")
    return cls


__all__ = [
    "ProcessIdentity",
    "Runnable",
    "TaskArgs",
    "is_registered",
    "register_task",
    "resolve_task_type",
    "task_type_name",
]
