"""Character-window chunking for plain-text transcripts."""

from __future__ import annotations

from src.errors import InvalidParameterError
from src.ingestion.models import TranscriptChunk

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_BOUNDARY_LOOKBACK = 100

# Preferred break points, strongest first. A chunk ends just after the separator.
_BREAK_SEPARATORS: tuple[str, ...] = ("\n\n", "\n", ". ", "? ", "! ", " ")


def _find_break(text: str, hard_end: int, min_end: int, lookback: int) -> int:
    """Return the end offset for a window whose hard cut falls at *hard_end*.

    Searches the last *lookback* characters before the hard cut for a
    separator, never ending at or before *min_end*.  Falls back to the hard
    cut when no separator is found.
    """
    window_start = max(min_end, hard_end - lookback)
    if window_start >= hard_end:
        return hard_end

    for sep in _BREAK_SEPARATORS:
        idx = text.rfind(sep, window_start, hard_end)
        if idx != -1:
            return idx + len(sep)
    return hard_end


def split_transcript(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
    boundary_lookback: int = DEFAULT_BOUNDARY_LOOKBACK,
) -> list[TranscriptChunk]:
    """Split transcript text into overlapping windows of up to *chunk_size* characters.

    Each window after the first starts *overlap* characters before the end of
    the previous one, so consecutive chunks always share exactly *overlap*
    characters and ``chunks[0].text + "".join(c.text[overlap:] for c in
    chunks[1:])`` reproduces *text*.  When a window would end mid-text, the
    splitter moves its end back (by at most *boundary_lookback* characters)
    to just after a paragraph, line, sentence or word break.  Without one in
    range, it cuts at the exact offset.

    Args:
        text: Raw transcript text.
        chunk_size: Maximum characters per chunk.
        overlap: Characters shared between consecutive chunks.
        boundary_lookback: How far back from a hard cut to look for a break.

    Returns:
        Chunks with ordinals ``0, 1, 2, ...``.

    Raises:
        InvalidParameterError: If *text* is empty or the window parameters
            are out of range.
    """
    if not isinstance(text, str) or not text:
        raise InvalidParameterError("text must be a non-empty string", stage="initialize")
    if chunk_size <= 0:
        raise InvalidParameterError(
            f"chunk_size must be positive, got {chunk_size}", stage="initialize"
        )
    if not 0 <= overlap < chunk_size:
        raise InvalidParameterError(
            f"overlap must satisfy 0 <= overlap < chunk_size ({chunk_size}), got {overlap}",
            stage="initialize",
        )
    if boundary_lookback < 0:
        raise InvalidParameterError(
            f"boundary_lookback must be non-negative, got {boundary_lookback}",
            stage="initialize",
        )

    chunks: list[TranscriptChunk] = []
    length = len(text)
    start = 0

    while True:
        hard_end = min(start + chunk_size, length)
        if hard_end == length:
            end = length
        else:
            # end must stay past start + overlap so the next window advances
            end = _find_break(text, hard_end, start + overlap, boundary_lookback)

        chunks.append(TranscriptChunk(ordinal=len(chunks), text=text[start:end]))

        if end >= length:
            break
        start = end - overlap

    return chunks
