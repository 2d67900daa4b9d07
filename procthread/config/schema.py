"""Marshmallow schema for ThreadConfig validation."""

from __future__ import annotations

import os
import shlex
from typing import Any, Dict

from marshmallow import Schema, ValidationError, fields, post_load, pre_load, validate, validates_schema

from ..const import (
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_JOIN_POLL_INTERVAL,
    DEFAULT_OUTPUT_BUFFER_LIMIT,
    MIN_SECRET_LEN,
    PLACEHOLDER_SECRET,
)
from .model import ThreadConfig

_POSITIVE = validate.Range(min=0.0, min_inclusive=False)


class ThreadConfigSchema(Schema):
    """Declarative validation schema for procthread configuration."""

    runner_command = fields.List(fields.Str(validate=validate.Length(min=1)), load_default=None, allow_none=True)
    python_executable = fields.Str(load_default=None, allow_none=True)
    secret = fields.Raw(load_default=b"")
    join_poll_interval = fields.Float(load_default=DEFAULT_JOIN_POLL_INTERVAL, validate=_POSITIVE)
    output_buffer_limit = fields.Int(load_default=DEFAULT_OUTPUT_BUFFER_LIMIT, validate=validate.Range(min=0))
    debug_logging = fields.Bool(load_default=DEFAULT_DEBUG_LOGGING)

    @pre_load
    def split_runner_command(self, data: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        runner = data.get("runner_command")
        if isinstance(runner, str):
            data = dict(data)
            data["runner_command"] = shlex.split(runner) or None
        return data

    @validates_schema
    def validate_runner_command(self, data: Dict[str, Any], **kwargs: Any) -> None:
        runner = data.get("runner_command")
        if runner is not None and not runner:
            raise ValidationError("runner_command must not be empty", field_name="runner_command")

    @validates_schema
    def validate_secret(self, data: Dict[str, Any], **kwargs: Any) -> None:
        secret = data.get("secret")
        if not secret:
            return
        if isinstance(secret, str):
            secret = os.fsencode(secret)
        if not isinstance(secret, bytes):
            raise ValidationError("secret must be a string or bytes", field_name="secret")
        if len(secret) < MIN_SECRET_LEN:
            raise ValidationError(f"secret must be at least {MIN_SECRET_LEN} bytes", field_name="secret")
        if secret.startswith(PLACEHOLDER_SECRET):
            raise ValidationError("secret placeholder is insecure", field_name="secret")

    @post_load
    def make_config(self, data: Dict[str, Any], **kwargs: Any) -> ThreadConfig:
        secret = data.get("secret") or b""
        if isinstance(secret, str):
            secret = os.fsencode(secret)
        data["secret"] = secret

        runner = data.get("runner_command")
        if runner is not None:
            data["runner_command"] = tuple(runner)

        python = (data.get("python_executable") or "").strip()
        data["python_executable"] = python or None

        return ThreadConfig(**data)
