"""Retrieval pipeline: chunk -> index on initialize; search -> assemble -> generate on query."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import StrEnum

from src.errors import (
    InvalidQueryError,
    InvalidTranscriptError,
    NoContextAvailableError,
    NotInitializedError,
    PipelineError,
)
from src.ingestion.chunking import split_transcript
from src.ingestion.models import ScoredChunk
from src.pipeline_config import PipelineConfig
from src.retrieval.context import assemble_context
from src.retrieval.generation import AnswerGenerator, classify_generation_error
from src.retrieval.search import LexicalIndex

logger = logging.getLogger(__name__)

# Transcripts with fewer non-whitespace characters are rejected outright.
MIN_TRANSCRIPT_CHARS = 10


class PipelineState(StrEnum):
    """Lifecycle state of a pipeline instance."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


@dataclass(frozen=True)
class RetrievedContext:
    """Search hits for a question and the context assembled from them."""

    question: str
    hits: tuple[ScoredChunk, ...]
    context: str


@dataclass(frozen=True)
class Answer:
    """A generated answer together with the retrieval it was grounded on."""

    text: str
    model_id: str
    retrieved: RetrievedContext


class RetrievalPipeline:
    """Answers questions about one transcript at a time.

    ``initialize`` builds a new :class:`LexicalIndex` and swaps it in with a
    single reference assignment; ``query`` captures the current index once
    at entry, so a query already in flight finishes against the transcript it
    started with while later queries see the new one.

    Args:
        generator: External answer generator.
        config: Per-instance parameters; defaults to :class:`PipelineConfig`.
    """

    def __init__(self, generator: AnswerGenerator, config: PipelineConfig | None = None) -> None:
        self._generator = generator
        self._config = config or PipelineConfig()
        self._index: LexicalIndex | None = None

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def state(self) -> PipelineState:
        return PipelineState.UNINITIALIZED if self._index is None else PipelineState.READY

    @property
    def chunk_count(self) -> int:
        index = self._index
        return 0 if index is None else len(index)

    def initialize(self, transcript: str) -> int:
        """Chunk and index *transcript*, replacing any previously loaded one.

        Returns:
            Number of chunks in the new index.

        Raises:
            InvalidTranscriptError: Transcript is not a string or has fewer
                than ``MIN_TRANSCRIPT_CHARS`` non-whitespace characters.
            InvalidParameterError: Chunking configuration is out of range.

        On any failure the pipeline is left Uninitialized.
        """
        if not isinstance(transcript, str) or len("".join(transcript.split())) < MIN_TRANSCRIPT_CHARS:
            self._index = None
            raise InvalidTranscriptError(
                f"Transcript must contain at least {MIN_TRANSCRIPT_CHARS} non-whitespace characters",
                stage="initialize",
            )

        cfg = self._config
        try:
            chunks = split_transcript(
                transcript,
                chunk_size=cfg.chunk_size,
                overlap=cfg.chunk_overlap,
                boundary_lookback=cfg.lookback,
            )
        except PipelineError:
            self._index = None
            raise

        index = LexicalIndex.build(chunks, min_token_length=cfg.min_token_length)
        self._index = index
        logger.info(
            "Initialized transcript: %d characters in %d chunks", len(transcript), len(index)
        )
        return len(index)

    def retrieve(self, question: str) -> RetrievedContext:
        """Search the current index and assemble context, without generating."""
        return self._retrieve(self._index, question)

    def _retrieve(self, index: LexicalIndex | None, question: str) -> RetrievedContext:
        if index is None:
            raise NotInitializedError(
                "No transcript loaded; call initialize() first", stage="search"
            )
        if not isinstance(question, str) or not question.strip():
            raise InvalidQueryError("Question must not be empty", stage="search")

        hits = index.search(question, self._config.top_k)
        context = assemble_context(hits, index.documents, self._config.fallback_count)
        if not context:
            raise NoContextAvailableError(
                "Transcript index holds no chunks to build context from", stage="assemble"
            )
        return RetrievedContext(question=question, hits=tuple(hits), context=context)

    async def query(self, question: str, model_id: str, timeout: float | None = None) -> str:
        """Answer *question* from the loaded transcript using *model_id*.

        Args:
            question: Natural-language question.
            model_id: Generation model to use.
            timeout: Seconds to allow the generator; defaults to
                ``config.generation_timeout``.

        Returns:
            The generator's answer, verbatim.

        Raises:
            NotInitializedError, InvalidQueryError, NoContextAvailableError,
            GenerationTimeoutError, GenerationFailureError.
        """
        answer = await self.ask(question, model_id, timeout=timeout)
        return answer.text

    async def ask(self, question: str, model_id: str, timeout: float | None = None) -> Answer:
        """Like :meth:`query`, but also return the hits and context used."""
        index = self._index  # snapshot for the whole call
        retrieved = self._retrieve(index, question)
        if not isinstance(model_id, str) or not model_id.strip():
            raise InvalidQueryError("Model id must not be empty", stage="generate")

        limit = self._config.generation_timeout if timeout is None else timeout
        logger.info(
            "Querying model %s with %d hits (%d context characters)",
            model_id,
            len(retrieved.hits),
            len(retrieved.context),
        )

        try:
            text = await asyncio.wait_for(
                self._generator.generate(model_id, question, retrieved.context, limit),
                timeout=limit,
            )
        except Exception as exc:
            error = classify_generation_error(exc, stage="generate")
            logger.warning("Generation with model %s failed: %s (%s)", model_id, error.kind, exc)
            if error is exc:
                raise
            raise error from exc

        return Answer(text=text, model_id=model_id, retrieved=retrieved)
