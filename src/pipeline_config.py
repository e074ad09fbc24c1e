"""Pipeline configuration: provider enum and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings


class GenerationProvider(str, Enum):
    """Available backends for answer generation."""

    GROQ = "groq"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable per-instance configuration for the retrieval pipeline.

    Defaults mirror the documented behaviour: 1000-character chunks with a
    200-character overlap, top-3 retrieval, a 3-chunk fallback context and a
    30 second generation timeout.  ``boundary_lookback`` bounds how far back
    from a hard cut the splitter may move to land on a break; left unset it
    is a tenth of ``chunk_size``.
    """

    chunk_size: int = 1000
    chunk_overlap: int = 200
    boundary_lookback: int | None = None
    top_k: int = 3
    fallback_count: int = 3
    generation_timeout: float = 30.0
    min_token_length: int = 4

    def __post_init__(self) -> None:
        if self.boundary_lookback is None:
            object.__setattr__(self, "boundary_lookback", max(0, self.chunk_size // 10))

    @property
    def lookback(self) -> int:
        """Effective boundary lookback in characters."""
        return self.boundary_lookback or 0

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        """Build a config from application settings."""
        return cls(
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            top_k=settings.top_k,
            fallback_count=settings.fallback_count,
            generation_timeout=settings.generation_timeout,
            min_token_length=settings.min_token_length,
        )
