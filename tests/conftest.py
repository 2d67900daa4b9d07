"""Pytest configuration for procthread tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

import pytest

from procthread import ProcessController, Runnable
from procthread.config import settings
from procthread.config.model import ThreadConfig
from procthread.const import (
    ENV_DEBUG,
    ENV_JOIN_POLL_INTERVAL,
    ENV_OUTPUT_LIMIT,
    ENV_PYTHON,
    ENV_RUNNER,
    ENV_SECRET,
    ENV_SECRET_HEX,
)

TEST_SECRET = b"procthread-test-secret-0123"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings, "_active_config", None)
    for name in (ENV_RUNNER, ENV_PYTHON, ENV_SECRET, ENV_SECRET_HEX, ENV_JOIN_POLL_INTERVAL, ENV_OUTPUT_LIMIT, ENV_DEBUG):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def thread_config() -> ThreadConfig:
    return ThreadConfig(secret=TEST_SECRET, join_poll_interval=0.01)


@pytest.fixture
def make_controller(thread_config: ThreadConfig) -> Iterator[Callable[..., ProcessController]]:
    """Build controllers that are always reaped at teardown."""
    created: list[ProcessController] = []

    def _factory(task: Runnable, **kwargs: Any) -> ProcessController:
        kwargs.setdefault("config", thread_config)
        controller = ProcessController(task, **kwargs)
        created.append(controller)
        return controller

    yield _factory

    for controller in created:
        controller.close()
