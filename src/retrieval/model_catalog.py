"""Model catalog: list the provider's chat models, with a static fallback."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelInfo:
    """A selectable generation model."""

    id: str
    name: str
    created: int | None = None
    owned_by: str | None = None


FALLBACK_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(id="llama3-8b-8192", name="Llama 3 8B (Default)"),
    ModelInfo(id="llama3-70b-8192", name="Llama 3 70B"),
    ModelInfo(id="mixtral-8x7b-32768", name="Mixtral 8x7B"),
    ModelInfo(id="gemma-7b-it", name="Gemma 7B IT"),
)

_KNOWN_FAMILIES: tuple[tuple[str, str], ...] = (
    ("llama3-8b", "Llama 3 8B"),
    ("llama3-70b", "Llama 3 70B"),
    ("mixtral-8x7b", "Mixtral 8x7B"),
    ("gemma-7b", "Gemma 7B IT"),
)


def format_model_name(model_id: str) -> str:
    """Turn a raw model id into a display name.

    Known families get fixed labels; anything else is split on ``-`` and
    each part capitalized (``"qwen-qwq-32b"`` -> ``"Qwen Qwq 32b"``).
    """
    for fragment, label in _KNOWN_FAMILIES:
        if fragment in model_id:
            return label
    return " ".join(part[:1].upper() + part[1:] for part in model_id.split("-"))


async def list_models(settings: Settings, client: AsyncOpenAI | None = None) -> list[ModelInfo]:
    """Fetch available models, newest first.

    Any failure (missing key, network, provider error) is logged and
    answered with :data:`FALLBACK_MODELS` so callers always get a usable list.
    A passed-in *client* stays open; one built here is closed before returning.
    """
    if client is not None:
        return await _fetch_models(client)

    if not settings.groq_api_key:
        logger.warning("Groq API key is not set; using fallback model list")
        return list(FALLBACK_MODELS)
    async with AsyncOpenAI(
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
        timeout=settings.models_timeout,
        max_retries=0,
    ) as owned:
        return await _fetch_models(owned)


async def _fetch_models(client: AsyncOpenAI) -> list[ModelInfo]:
    try:
        page = await client.models.list()
        models = [
            ModelInfo(
                id=m.id,
                name=format_model_name(m.id),
                created=m.created,
                owned_by=m.owned_by,
            )
            for m in page.data
        ]
    except Exception:
        logger.warning("Fetching models failed; using fallback model list", exc_info=True)
        return list(FALLBACK_MODELS)

    if not models:
        return list(FALLBACK_MODELS)
    return sorted(models, key=lambda m: m.created or 0, reverse=True)
