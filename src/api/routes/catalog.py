"""Model catalog endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from src.api.models import ModelSummary
from src.config import settings
from src.retrieval.model_catalog import list_models

router = APIRouter()


@router.get("/api/models", response_model=list[ModelSummary])
async def get_models() -> list[ModelSummary]:
    """List generation models, newest first (static list if the provider is unreachable)."""
    models = await list_models(settings)
    return [
        ModelSummary(id=m.id, name=m.name, created=m.created, owned_by=m.owned_by)
        for m in models
    ]
