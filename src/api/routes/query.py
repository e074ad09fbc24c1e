"""Query endpoint: retrieve transcript context and generate an answer."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from src.api.dependencies import get_session_store
from src.api.models import QueryRequest, QueryResponse, SourceChunk
from src.api.sessions import SessionStore
from src.config import settings
from src.errors import NotInitializedError

router = APIRouter()


@router.post("/api/query", response_model=QueryResponse)
async def query(
    request: QueryRequest,
    sessions: Annotated[SessionStore, Depends(get_session_store)],
) -> QueryResponse:
    """Answer a question about the session's transcript.

    Falls back to ``settings.default_model`` when no model is given.
    Pipeline errors are turned into JSON responses by the app's handler.
    """
    pipeline = sessions.get(request.session_id)
    if pipeline is None:
        raise NotInitializedError(
            f"No transcript loaded for session {request.session_id}", stage="search"
        )

    model_id = request.model_id or settings.default_model
    answer = await pipeline.ask(request.question, model_id)

    return QueryResponse(
        answer=answer.text,
        model_id=answer.model_id,
        sources=[
            SourceChunk(ordinal=hit.ordinal, text=hit.text, score=hit.score)
            for hit in answer.retrieved.hits
        ],
    )
