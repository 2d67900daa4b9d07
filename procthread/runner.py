"""Child-side entry point.

Invoked by :class:`procthread.ProcessController` as::

    python -m procthread.runner --namespace=NS --name=NAME [--tag=TAG] [--debug] [--arg-KEY[=VALUE]]...

The encoded task is read from stdin until EOF, decoded with the secret from
the environment configuration and run with the ``--arg-*`` flags as its
arguments. Exit status is 0 on success, 1 when decoding or the task fails,
2 when the payload signature is rejected and 130 on SIGINT.

The identity flags do not retitle the process; they show up in ``ps`` as
part of the command line and are attached to every log record. Decoding
never looks at them.

Configuration comes from the environment the controller prepared: the
secret arrives hex-encoded in ``PROCTHREAD_SECRET_HEX`` so its exact bytes
survive, and inherited ``PROCTHREAD_*`` values have already been removed.
"""

from __future__ import annotations

import argparse
import inspect
import logging
import sys
from collections.abc import Sequence
from typing import BinaryIO, NoReturn

from . import codec
from .config.logging import configure_logging
from .config.model import ThreadConfig
from .config.settings import load_thread_config
from .const import (
    ARG_PREFIX,
    RUNNER_EXIT_INTERRUPTED,
    RUNNER_EXIT_OK,
    RUNNER_EXIT_REJECTED,
    RUNNER_EXIT_TASK_FAILED,
)
from .errors import CodecError, ConfigurationError, SignatureMismatchError
from .security import verify_crypto_integrity
from .task import Runnable, TaskArgs

logger = logging.getLogger("procthread.runner")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procthread-runner",
        description="Run a procthread task read from stdin.",
        allow_abbrev=False,
    )
    parser.add_argument("--namespace", default="")
    parser.add_argument("--name", default="")
    parser.add_argument("--tag", default=None)
    parser.add_argument("--debug", action="store_true")
    return parser


def parse_arguments(argv: Sequence[str] | None = None) -> tuple[argparse.Namespace, TaskArgs]:
    """Split the command line into identity options and task arguments."""

    parser = _build_parser()
    options, extra = parser.parse_known_args(argv)

    task_args: TaskArgs = {}
    for token in extra:
        if not token.startswith(ARG_PREFIX):
            parser.error(f"unrecognized argument: {token}")
        key, sep, value = token[len(ARG_PREFIX) :].partition("=")
        if not key:
            parser.error(f"empty task argument name in {token!r}")
        task_args[key] = value if sep else True
    return options, task_args


def _invoke(task: Runnable, args: TaskArgs) -> None:
    run = task.run
    try:
        parameters = inspect.signature(run).parameters
    except (TypeError, ValueError):
        run(args)
        return
    if parameters:
        run(args)
    else:
        # Older tasks take no arguments.
        run()  # type: ignore[call-arg]


def run(argv: Sequence[str] | None = None, stdin: BinaryIO | None = None) -> int:
    """Execute one task and return the process exit status."""

    options, task_args = parse_arguments(argv)

    try:
        config = load_thread_config()
    except ConfigurationError as exc:
        configure_logging(ThreadConfig(), debug=options.debug)
        logger.critical("Runner configuration rejected: %s", exc.message)
        return RUNNER_EXIT_TASK_FAILED
    configure_logging(config, debug=options.debug)

    log_extra = {"namespace": options.namespace, "task_name": options.name, "tag": options.tag}
    if config.signing_enabled and not verify_crypto_integrity():
        logger.critical("Cryptographic self-test failed; refusing to verify payloads.", extra=log_extra)
        return RUNNER_EXIT_REJECTED

    payload = (stdin if stdin is not None else sys.stdin.buffer).read()
    logger.debug("Read %d byte payload", len(payload), extra=log_extra)

    try:
        task = codec.decode(payload, config.secret or None)
    except SignatureMismatchError as exc:
        logger.error("Rejected task payload: %s", exc.message, extra=log_extra)
        return RUNNER_EXIT_REJECTED
    except CodecError as exc:
        logger.error("Cannot decode task payload: %s", exc.message, extra=log_extra, exc_info=True)
        return RUNNER_EXIT_TASK_FAILED

    try:
        _invoke(task, task_args)
    except KeyboardInterrupt:
        logger.warning("Task %s interrupted", type(task).__name__, extra=log_extra)
        return RUNNER_EXIT_INTERRUPTED
    except Exception:
        logger.exception("Task %s failed", type(task).__name__, extra=log_extra)
        return RUNNER_EXIT_TASK_FAILED

    logger.debug("Task %s finished", type(task).__name__, extra=log_extra)
    return RUNNER_EXIT_OK


def main(argv: Sequence[str] | None = None) -> NoReturn:  # pragma: no cover (Entry point wrapper)
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
