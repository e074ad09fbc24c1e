"""Data models for transcript chunks."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TranscriptChunk:
    """An ordered fragment of the source transcript."""

    ordinal: int
    text: str


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk paired with its relevance to one query."""

    chunk: TranscriptChunk
    score: int = 0

    @property
    def ordinal(self) -> int:
        return self.chunk.ordinal

    @property
    def text(self) -> str:
        return self.chunk.text
