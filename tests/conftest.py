"""Shared fixtures: a recording answer generator and an API client wired to it."""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass, field

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_answer_generator
from src.api.main import app
from src.api.sessions import SessionStore
from src.pipeline_config import PipelineConfig


@dataclass
class GenerateCall:
    model_id: str
    question: str
    context: str
    timeout: float


@dataclass
class RecordingGenerator:
    """Answer generator stand-in that records every call.

    Set ``error`` to make calls fail, or ``delay`` to make them slow.
    """

    answer: str = "stub answer"
    error: BaseException | None = None
    delay: float = 0.0
    calls: list[GenerateCall] = field(default_factory=list)

    async def generate(self, model_id: str, question: str, context: str, timeout: float) -> str:
        self.calls.append(GenerateCall(model_id, question, context, timeout))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.answer


@pytest.fixture
def generator() -> RecordingGenerator:
    return RecordingGenerator()


@pytest.fixture
def client(generator: RecordingGenerator) -> Iterator[TestClient]:
    """API client with fresh sessions and the recording generator injected."""
    app.state.sessions = SessionStore(PipelineConfig())
    app.dependency_overrides[get_answer_generator] = lambda: generator
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
