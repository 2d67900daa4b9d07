"""Runner command line assembly.

The command is built as an argv vector and launched without a shell, so no
namespace, name, tag or argument value can ever be interpreted as shell
syntax. :func:`format_command` renders the same vector as one line in which
every element is quoted on its own, for logs or for callers that must pass
a string to a shell.
"""

from __future__ import annotations

import shlex
from collections.abc import Iterable, Mapping, Sequence

from .const import ARG_PREFIX
from .task import ProcessIdentity

ArgumentValue = str | int | float | bool | None


def _valid_key(key: str) -> bool:
    # The runner splits on the first "=", so a key must be a non-empty token without one.
    return bool(key) and "=" not in key and not any(ch.isspace() for ch in key)


def _encode_argument(key: str, value: object) -> str | None:
    if not _valid_key(key):
        return None
    # bool before int: True is an int.
    if value is True:
        return f"{ARG_PREFIX}{key}"
    if value is False or value is None:
        return None
    if isinstance(value, (str, int, float)):
        return f"{ARG_PREFIX}{key}={value}"
    return None


def encode_arguments(arguments: Mapping[str, object]) -> list[str]:
    """Encode custom arguments as ``--arg-*`` flags, in iteration order.

    ``True`` yields a bare flag, ``False`` and ``None`` are omitted, other
    scalars become ``--arg-key=value`` and non-scalar values are dropped.
    Keys that are empty or contain ``=`` or whitespace are dropped as well,
    since the runner could not read them back.
    """

    encoded: list[str] = []
    for key, value in arguments.items():
        token = _encode_argument(str(key), value)
        if token is not None:
            encoded.append(token)
    return encoded


def build_command(
    identity: ProcessIdentity,
    *,
    runner: Sequence[str],
    arguments: Mapping[str, object] | None = None,
    debug: bool = False,
) -> tuple[str, ...]:
    """Assemble the runner argv: identity flags, ``--debug``, then custom arguments."""

    if not runner:
        raise ValueError("runner command must not be empty")

    argv = [*runner, f"--namespace={identity.namespace}", f"--name={identity.name}"]
    if identity.tag is not None:
        argv.append(f"--tag={identity.tag}")
    if debug:
        argv.append("--debug")
    if arguments:
        argv.extend(encode_arguments(arguments))
    return tuple(argv)


def format_command(argv: Iterable[str]) -> str:
    """Render ``argv`` as a single shell-escaped line."""
    return shlex.join(argv)


__all__ = ["ArgumentValue", "build_command", "encode_arguments", "format_command"]
