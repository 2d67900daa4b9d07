"""Settings loader for procthread.

Configuration comes from ``PROCTHREAD_*`` environment variables and is
validated through :class:`ThreadConfigSchema`. The active configuration is
process-global and set once at bootstrap; controllers read it and never
mutate it. Tests and embedding hosts can bypass the global entirely by
passing ``config=`` to a controller.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import fields

from marshmallow import ValidationError

from ..const import (
    ENV_DEBUG,
    ENV_JOIN_POLL_INTERVAL,
    ENV_OUTPUT_LIMIT,
    ENV_PREFIX,
    ENV_PYTHON,
    ENV_RUNNER,
    ENV_SECRET,
    ENV_SECRET_HEX,
)
from ..errors import ConfigurationError
from .model import ThreadConfig
from .schema import ThreadConfigSchema

logger = logging.getLogger(__name__)

_ENV_FIELDS: tuple[tuple[str, str], ...] = (
    (ENV_RUNNER, "runner_command"),
    (ENV_PYTHON, "python_executable"),
    (ENV_SECRET, "secret"),
    (ENV_JOIN_POLL_INTERVAL, "join_poll_interval"),
    (ENV_OUTPUT_LIMIT, "output_buffer_limit"),
    (ENV_DEBUG, "debug_logging"),
)

_config_lock = threading.Lock()
_active_config: ThreadConfig | None = None


def _raw_from_environ(environ: Mapping[str, str]) -> dict[str, object]:
    raw: dict[str, object] = {}
    for env_name, field_name in _ENV_FIELDS:
        value = environ.get(env_name)
        if value is None or not value.strip():
            continue
        # Secrets are key material; surrounding whitespace is significant.
        raw[field_name] = value if field_name == "secret" else value.strip()

    secret_hex = environ.get(ENV_SECRET_HEX)
    if secret_hex:
        try:
            raw["secret"] = bytes.fromhex(secret_hex)
        except ValueError as exc:
            raise ConfigurationError(f"{ENV_SECRET_HEX} is not valid hex: {exc}") from exc
    return raw


def build_thread_config(raw: Mapping[str, object]) -> ThreadConfig:
    """Validate raw values and build a :class:`ThreadConfig`."""
    try:
        return ThreadConfigSchema().load(dict(raw))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid procthread configuration: {exc.messages}") from exc


def validate_thread_config(config: ThreadConfig) -> ThreadConfig:
    """Run a config built in code through the same checks as environment values.

    Returns ``config`` itself so callers keep the instance they passed.
    """
    raw = {item.name: getattr(config, item.name) for item in fields(config)}
    if config.runner_command is not None:
        raw["runner_command"] = list(config.runner_command)
    build_thread_config(raw)
    return config


def child_environment(config: ThreadConfig, base: Mapping[str, str]) -> dict[str, str]:
    """Environment for a runner process that mirrors ``config`` exactly.

    Inherited ``PROCTHREAD_*`` variables are dropped so the child cannot pick
    up values the parent never used. The secret travels hex-encoded so its
    bytes survive unchanged.
    """
    env = {key: value for key, value in base.items() if not key.startswith(ENV_PREFIX)}
    if config.secret:
        env[ENV_SECRET_HEX] = config.secret.hex()
    if config.debug_logging:
        env[ENV_DEBUG] = "true"
    return env


def load_thread_config(environ: Mapping[str, str] | None = None) -> ThreadConfig:
    """Load configuration from ``PROCTHREAD_*`` environment variables."""

    source = os.environ if environ is None else environ
    config = build_thread_config(_raw_from_environ(source))
    if not config.signing_enabled:
        logger.debug("No %s configured; task payloads will not be signed.", ENV_SECRET)
    return config


def configure(config: ThreadConfig) -> ThreadConfig:
    """Install the process-global configuration. Allowed once per process."""

    global _active_config
    with _config_lock:
        if _active_config is not None:
            raise ConfigurationError("procthread is already configured")
        _active_config = validate_thread_config(config)
    logger.debug("procthread configured: runner=%s", config.resolved_runner())
    return config


def get_config() -> ThreadConfig:
    """Return the global configuration, loading it from the environment on first use."""

    global _active_config
    with _config_lock:
        if _active_config is None:
            _active_config = load_thread_config()
        return _active_config


__all__ = [
    "ThreadConfig",
    "build_thread_config",
    "child_environment",
    "configure",
    "get_config",
    "load_thread_config",
    "validate_thread_config",
]
