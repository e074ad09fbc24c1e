"""Lexical search: term-frequency scoring over an in-memory chunk set."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from src.ingestion.models import ScoredChunk, TranscriptChunk

logger = logging.getLogger(__name__)

DEFAULT_MIN_TOKEN_LENGTH = 4


def tokenize_query(query: str, min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH) -> list[str]:
    """Split a query on whitespace, lower-case it and drop short tokens.

    Repeated tokens are kept, so ``"cats cats"`` weighs ``cats`` twice.
    """
    return [t for t in query.lower().split() if len(t) >= min_token_length]


def score_text(text: str, tokens: Iterable[str]) -> int:
    """Sum the substring occurrences of every token in already lower-cased *text*."""
    return sum(text.count(token) for token in tokens)


class LexicalIndex:
    """Immutable collection of chunks for one transcript, ranked by term frequency.

    A new transcript gets a new index; an existing index is never mutated,
    so a reader holding a reference always sees a consistent chunk set.
    """

    def __init__(
        self,
        chunks: Iterable[TranscriptChunk],
        min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
    ) -> None:
        self._documents: tuple[TranscriptChunk, ...] = tuple(
            sorted(chunks, key=lambda c: c.ordinal)
        )
        # Lower-cased once so each query only pays for counting
        self._folded: tuple[str, ...] = tuple(c.text.lower() for c in self._documents)
        self._min_token_length = min_token_length

    @classmethod
    def build(
        cls,
        chunks: Iterable[TranscriptChunk],
        min_token_length: int = DEFAULT_MIN_TOKEN_LENGTH,
    ) -> LexicalIndex:
        """Construct a fresh index over *chunks*."""
        index = cls(chunks, min_token_length=min_token_length)
        logger.debug("Built lexical index over %d chunks", len(index))
        return index

    @property
    def documents(self) -> Sequence[TranscriptChunk]:
        """Chunks in ordinal order (read-only)."""
        return self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def search(self, query: str, top_k: int) -> list[ScoredChunk]:
        """Rank chunks against *query* and return at most *top_k* of them.

        Results are sorted by score descending, ties broken by ascending
        ordinal. A query with no usable tokens scores every chunk 0, which
        leaves them in ordinal order.

        Args:
            query: Free-text query.
            top_k: Maximum results; values ``<= 0`` yield an empty list.

        Returns:
            Scored chunks, most relevant first.
        """
        if top_k <= 0 or not self._documents:
            return []

        tokens = tokenize_query(query, self._min_token_length)
        scored = [
            ScoredChunk(chunk=chunk, score=score_text(folded, tokens) if tokens else 0)
            for chunk, folded in zip(self._documents, self._folded, strict=True)
        ]
        scored.sort(key=lambda s: (-s.score, s.ordinal))
        hits = scored[:top_k]
        logger.debug(
            "Search for %r with %d tokens returned %d hits (top score %d)",
            query,
            len(tokens),
            len(hits),
            hits[0].score,
        )
        return hits
