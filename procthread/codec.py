"""Serialization gateway between a controller and the runner.

Wire format (JSON, via msgspec)::

    {"body": "<base64 of TaskBody JSON>", "signature": "<hex>" | null}

``TaskBody`` carries the registered type name and the task's fields as
builtins. When a secret is configured the body bytes are signed, and the
runner refuses to decode anything whose signature does not verify.
"""

from __future__ import annotations

import logging
from typing import Any

import msgspec

from .errors import CodecError, PayloadDecodeError, SignatureMismatchError, UnknownTaskError
from .security import sign_payload, verify_signature
from .task import Runnable, is_registered, resolve_task_type, task_type_name

logger = logging.getLogger(__name__)


class TaskBody(msgspec.Struct, frozen=True):
    type: str
    state: dict[str, Any]


class TaskEnvelope(msgspec.Struct, frozen=True):
    body: bytes
    signature: str | None = None


_BODY_DECODER = msgspec.json.Decoder(TaskBody)
_ENVELOPE_DECODER = msgspec.json.Decoder(TaskEnvelope)


def encode(task: Runnable, secret: bytes | None = None) -> bytes:
    """Serialize ``task`` into an opaque payload, signed when ``secret`` is set."""

    cls = type(task)
    if not is_registered(cls):
        raise UnknownTaskError(f"Task type '{task_type_name(cls)}' is not registered; decorate it with @register_task")

    try:
        state = msgspec.to_builtins(task)
    except TypeError as exc:
        raise CodecError(f"Task {cls.__name__} holds non-serializable state: {exc}") from exc
    if not isinstance(state, dict):
        raise CodecError(f"Task {cls.__name__} must serialize to a mapping, got {type(state).__name__}")

    body = msgspec.json.encode(TaskBody(type=task_type_name(cls), state=state))
    signature = sign_payload(body, secret) if secret else None
    return msgspec.json.encode(TaskEnvelope(body=body, signature=signature))


def decode(payload: bytes, secret: bytes | None = None) -> Runnable:
    """Rebuild a task from ``payload``, verifying its signature when ``secret`` is set."""

    try:
        envelope = _ENVELOPE_DECODER.decode(payload)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise PayloadDecodeError(f"Malformed task envelope: {exc}") from exc

    if secret:
        if not verify_signature(envelope.body, envelope.signature, secret):
            raise SignatureMismatchError("Task payload signature is missing or invalid")
    elif envelope.signature is not None:
        raise SignatureMismatchError("Task payload is signed but no secret is configured")

    try:
        body = _BODY_DECODER.decode(envelope.body)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise PayloadDecodeError(f"Malformed task body: {exc}") from exc

    cls = resolve_task_type(body.type)
    try:
        task = msgspec.convert(body.state, type=cls)
    except msgspec.ValidationError as exc:
        raise PayloadDecodeError(f"Task state does not match {body.type}: {exc}") from exc

    logger.debug("Decoded task %s", body.type)
    return task


__all__ = ["TaskBody", "TaskEnvelope", "decode", "encode"]
