from __future__ import annotations

import itertools
import logging
import textwrap
from collections.abc import Callable

import pytest
import structlog
from click.testing import CliRunner

from tag_index.checkpoint import MemoryCheckpointStore
from tag_index.document import Document
from tag_index.markdown import parse_markdown


class StepClock:
    """Monotonic clock that advances by `step` seconds on every reading."""

    def __init__(self, step: float = 1.0) -> None:
        self.step = step
        self.now = 0.0

    def __call__(self) -> float:
        self.now += self.step
        return self.now


def dedent(text: str) -> str:
    return textwrap.dedent(text).lstrip()


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a reusable Click CLI runner."""
    return CliRunner()


@pytest.fixture()
def ns_clock() -> Callable[[], int]:
    """Shared nanosecond clock so documents and stores order their timestamps."""
    return itertools.count(1).__next__


@pytest.fixture()
def store(ns_clock) -> MemoryCheckpointStore:
    return MemoryCheckpointStore(clock=ns_clock)


@pytest.fixture()
def make_document(ns_clock) -> Callable[[str], Document]:
    def _make(markdown: str, document_id: str = "journal") -> Document:
        return Document(document_id, parse_markdown(dedent(markdown)), clock=ns_clock)

    return _make


@pytest.fixture()
def step_clock() -> StepClock:
    return StepClock()
