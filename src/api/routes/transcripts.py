"""Transcript endpoints: load a transcript into a session, or drop the session."""

from __future__ import annotations

import asyncio
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response

from src.api.dependencies import get_answer_generator, get_session_store
from src.api.models import InitializeRequest, InitializeResponse
from src.api.sessions import SessionStore
from src.retrieval.generation import AnswerGenerator

router = APIRouter()


@router.post("/api/transcripts", response_model=InitializeResponse)
async def load_transcript(
    request: InitializeRequest,
    sessions: Annotated[SessionStore, Depends(get_session_store)],
    generator: Annotated[AnswerGenerator, Depends(get_answer_generator)],
) -> InitializeResponse:
    """Chunk and index a transcript for the given session.

    Loading a new transcript replaces the session's previous one. Queries
    already running finish against the old transcript.
    """
    pipeline = sessions.get_or_create(request.session_id, generator)
    # Chunking and indexing are CPU-bound; keep them off the event loop.
    num_chunks = await asyncio.to_thread(pipeline.initialize, request.transcript)
    return InitializeResponse(
        session_id=request.session_id,
        num_chunks=num_chunks,
        num_characters=len(request.transcript),
    )


@router.delete("/api/transcripts/{session_id}", status_code=204)
async def drop_session(
    session_id: str,
    sessions: Annotated[SessionStore, Depends(get_session_store)],
) -> Response:
    """Forget a session and its transcript."""
    if not sessions.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    return Response(status_code=204)
