"""Shared fixtures for buglog tests."""

from __future__ import annotations

import io
import json
from collections.abc import Callable, Iterator
from typing import Any

import pytest

from buglog import JSONLWriter, Logger


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def out() -> io.StringIO:
    """In-memory sink for a JSONL writer."""
    return io.StringIO()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def logger(out: io.StringIO, clock: FakeClock) -> Logger:
    """Logger writing JSON lines to ``out`` with a fake clock."""
    return Logger(JSONLWriter(out), now=clock)


@pytest.fixture
def events(out: io.StringIO) -> Callable[[], list[dict[str, Any]]]:
    """Parse everything written to ``out`` so far."""

    def parse() -> list[dict[str, Any]]:
        return [json.loads(line) for line in out.getvalue().splitlines()]

    return parse


@pytest.fixture
def diagnostics() -> Iterator[list[str]]:
    """Collect loguru messages logged at ERROR and above."""
    from loguru import logger as loguru_logger

    messages: list[str] = []
    handler_id = loguru_logger.add(lambda m: messages.append(str(m)), level="ERROR", format="{message}")
    yield messages
    loguru_logger.remove(handler_id)
