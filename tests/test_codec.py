"""Tests for the task payload codec."""

from __future__ import annotations

import base64

import msgspec
import pytest

from procthread import codec
from procthread.errors import CodecError, PayloadDecodeError, SignatureMismatchError, UnknownTaskError
from procthread.task import Runnable, register_task, resolve_task_type, task_type_name
from tests.tasks import CounterTask, EchoTask, SleepTask

SECRET = b"codec-test-secret-material"


class Unregistered(Runnable):
    value: int = 1

    def run(self, args) -> None:
        pass


class HoldsObject(Runnable):
    handle: object = None

    def run(self, args) -> None:
        pass


def test_round_trip_without_secret() -> None:
    task = SleepTask(seconds=1.25, exit_code=4)

    decoded = codec.decode(codec.encode(task))

    assert decoded == task
    assert type(decoded) is SleepTask


def test_round_trip_with_secret() -> None:
    task = CounterTask(path="/tmp/counter", interval=0.5)

    payload = codec.encode(task, SECRET)
    decoded = codec.decode(payload, SECRET)

    assert decoded == task


def test_envelope_wire_format() -> None:
    payload = codec.encode(EchoTask(out="x", err="y"), SECRET)

    envelope = msgspec.json.decode(payload)
    body = msgspec.json.decode(base64.b64decode(envelope["body"]))

    assert set(envelope) == {"body", "signature"}
    assert len(envelope["signature"]) == 64
    assert body == {"type": "tests.tasks:EchoTask", "state": {"out": "x", "err": "y"}}


def test_unsigned_envelope_has_null_signature() -> None:
    envelope = msgspec.json.decode(codec.encode(EchoTask()))

    assert envelope["signature"] is None


def test_mismatched_secret_rejected() -> None:
    payload = codec.encode(SleepTask(), SECRET)

    with pytest.raises(SignatureMismatchError):
        codec.decode(payload, b"a-completely-different-secret")


def test_unsigned_payload_rejected_when_secret_configured() -> None:
    payload = codec.encode(SleepTask())

    with pytest.raises(SignatureMismatchError):
        codec.decode(payload, SECRET)


def test_signed_payload_rejected_without_secret() -> None:
    payload = codec.encode(SleepTask(), SECRET)

    with pytest.raises(SignatureMismatchError):
        codec.decode(payload)


def test_tampered_body_rejected() -> None:
    envelope = msgspec.json.decode(codec.encode(SleepTask(seconds=1), SECRET))
    body = msgspec.json.decode(base64.b64decode(envelope["body"]))
    body["state"]["seconds"] = 999
    envelope["body"] = base64.b64encode(msgspec.json.encode(body)).decode()

    with pytest.raises(SignatureMismatchError):
        codec.decode(msgspec.json.encode(envelope), SECRET)


@pytest.mark.parametrize("payload", [b"", b"not json", b"[]", b'{"body": 5}'])
def test_malformed_payload(payload: bytes) -> None:
    with pytest.raises(PayloadDecodeError):
        codec.decode(payload)


def test_malformed_body() -> None:
    payload = msgspec.json.encode({"body": base64.b64encode(b"{").decode(), "signature": None})

    with pytest.raises(PayloadDecodeError):
        codec.decode(payload)


def test_state_that_does_not_fit_the_type() -> None:
    body = msgspec.json.encode({"type": task_type_name(SleepTask), "state": {"seconds": "soon"}})
    payload = msgspec.json.encode({"body": base64.b64encode(body).decode(), "signature": None})

    with pytest.raises(PayloadDecodeError):
        codec.decode(payload)


def test_encode_requires_registration() -> None:
    with pytest.raises(UnknownTaskError):
        codec.encode(Unregistered())


def test_encode_rejects_unserializable_state() -> None:
    register_task(HoldsObject)

    with pytest.raises(CodecError):
        codec.encode(HoldsObject(handle=object()))


@pytest.mark.parametrize(
    "type_name",
    ["no-separator", ":Missing", "procthread_missing_module:Task", "tests.tasks:NotThere"],
)
def test_unknown_type_names(type_name: str) -> None:
    body = msgspec.json.encode({"type": type_name, "state": {}})
    payload = msgspec.json.encode({"body": base64.b64encode(body).decode(), "signature": None})

    with pytest.raises(UnknownTaskError):
        codec.decode(payload)


def test_resolver_imports_defining_module() -> None:
    assert resolve_task_type("tests.tasks:SleepTask") is SleepTask


def test_register_task_rejects_local_classes() -> None:
    class Local(Runnable):
        def run(self, args) -> None:
            pass

    with pytest.raises(TypeError):
        register_task(Local)


def test_register_task_requires_run() -> None:
    class NoRun:
        pass

    with pytest.raises(TypeError):
        register_task(NoRun)
