"""FastAPI dependencies shared by the route modules."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from src.api.sessions import SessionStore
from src.config import settings
from src.retrieval.generation import AnswerGenerator, build_answer_generator


@lru_cache(maxsize=1)
def get_answer_generator() -> AnswerGenerator:
    """Return the process-wide answer generator built from settings."""
    return build_answer_generator(settings)


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.sessions  # type: ignore[no-any-return]
