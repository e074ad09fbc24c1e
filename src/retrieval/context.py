"""Context assembly: turn ranked chunks into the text passed to the generator."""

from __future__ import annotations

from collections.abc import Sequence

from src.ingestion.models import ScoredChunk, TranscriptChunk

CONTEXT_SEPARATOR = "\n\n"


def assemble_context(
    scored: Sequence[ScoredChunk],
    fallback: Sequence[TranscriptChunk],
    fallback_count: int = 3,
) -> str:
    """Join ranked chunk texts into a single context string.

    Ranked chunks are joined in the order given, most relevant first. When
    there are none, the first *fallback_count* chunks of *fallback* are used
    in ordinal order instead.

    Args:
        scored: Search hits, already rank-sorted.
        fallback: The full chunk sequence of the transcript.
        fallback_count: How many leading chunks to use when *scored* is empty.

    Returns:
        The context text, or ``""`` when both inputs are empty.
    """
    if scored:
        return CONTEXT_SEPARATOR.join(s.text for s in scored)

    leading = sorted(fallback, key=lambda c: c.ordinal)[: max(0, fallback_count)]
    return CONTEXT_SEPARATOR.join(c.text for c in leading)
