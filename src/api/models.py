"""Pydantic request/response schemas for the Transcript Q&A API."""

from __future__ import annotations

from pydantic import BaseModel

DEFAULT_SESSION_ID = "default"


class InitializeRequest(BaseModel):
    """Request body for the /api/transcripts endpoint."""

    transcript: str
    session_id: str = DEFAULT_SESSION_ID


class InitializeResponse(BaseModel):
    """Response body for the /api/transcripts endpoint."""

    session_id: str
    num_chunks: int
    num_characters: int


class QueryRequest(BaseModel):
    """Request body for the /api/query endpoint."""

    question: str
    session_id: str = DEFAULT_SESSION_ID
    model_id: str | None = None


class SourceChunk(BaseModel):
    """A single retrieved transcript chunk with its relevance score."""

    ordinal: int
    text: str
    score: int


class QueryResponse(BaseModel):
    """Response body for the /api/query endpoint."""

    answer: str
    model_id: str
    sources: list[SourceChunk]


class ModelSummary(BaseModel):
    """A selectable generation model."""

    id: str
    name: str
    created: int | None = None
    owned_by: str | None = None


class ErrorResponse(BaseModel):
    """Body returned for any pipeline failure."""

    detail: str
    kind: str
    stage: str | None = None
    reason: str | None = None
