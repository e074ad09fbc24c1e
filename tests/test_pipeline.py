"""Tests for the retrieval pipeline: lifecycle, query flow, errors and concurrency."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import httpx
import openai
import pytest

from src.errors import (
    ErrorKind,
    FailureReason,
    GenerationFailureError,
    GenerationTimeoutError,
    InvalidParameterError,
    InvalidQueryError,
    InvalidTranscriptError,
    NoContextAvailableError,
    NotInitializedError,
)
from src.pipeline_config import PipelineConfig
from src.retrieval.pipeline import MIN_TRANSCRIPT_CHARS, PipelineState, RetrievalPipeline
from src.retrieval.search import LexicalIndex

if TYPE_CHECKING:
    from tests.conftest import RecordingGenerator

FILLER = "lorem ipsum dolor sit amet "


def _quantum_transcript() -> str:
    """About 1500 characters with "quantum entanglement" once near the middle."""
    return FILLER * 27 + "quantum entanglement " + FILLER * 28


class GatedGenerator:
    """Generator that blocks until released, to hold a query in flight."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.contexts: list[str] = []
        self.cancelled = False

    async def generate(self, model_id: str, question: str, context: str, timeout: float) -> str:
        self.contexts.append(context)
        self.started.set()
        try:
            await self.release.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return f"answer from {len(self.contexts)}"


class TestInitialize:
    def test_builds_index(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        assert pipeline.state is PipelineState.UNINITIALIZED

        num_chunks = pipeline.initialize(_quantum_transcript())

        assert num_chunks == 2
        assert pipeline.chunk_count == 2
        assert pipeline.state is PipelineState.READY

    @pytest.mark.parametrize("transcript", ["", "12345", "   \n\t  ", " a b c d e f g h i "])
    def test_rejects_short_transcripts(
        self, generator: RecordingGenerator, transcript: str
    ) -> None:
        pipeline = RetrievalPipeline(generator)
        with pytest.raises(InvalidTranscriptError) as exc_info:
            pipeline.initialize(transcript)
        assert exc_info.value.kind is ErrorKind.INVALID_TRANSCRIPT
        assert exc_info.value.stage == "initialize"
        assert pipeline.state is PipelineState.UNINITIALIZED

    def test_rejects_non_string(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        with pytest.raises(InvalidTranscriptError):
            pipeline.initialize(None)  # type: ignore[arg-type]

    def test_accepts_minimum_length(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        assert pipeline.initialize(" a b c d e f g h i j ") == 1
        assert MIN_TRANSCRIPT_CHARS == 10

    def test_failed_initialize_reverts_to_uninitialized(
        self, generator: RecordingGenerator
    ) -> None:
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())
        with pytest.raises(InvalidTranscriptError):
            pipeline.initialize("short")
        assert pipeline.state is PipelineState.UNINITIALIZED
        assert pipeline.chunk_count == 0

    def test_invalid_chunk_config(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator, PipelineConfig(chunk_size=100, chunk_overlap=100))
        with pytest.raises(InvalidParameterError):
            pipeline.initialize(_quantum_transcript())
        assert pipeline.state is PipelineState.UNINITIALIZED

    def test_lookback_scales_with_chunk_size(self, generator: RecordingGenerator) -> None:
        # Paragraph breaks sit 120 characters before each 170-character period.
        transcript = ("x" * 48 + "\n\n" + "word " * 24) * 20
        pipeline = RetrievalPipeline(generator, PipelineConfig(chunk_size=150, chunk_overlap=0))
        pipeline.initialize(transcript)

        assert pipeline.config.boundary_lookback == 15
        sizes = [len(c.text) for c in pipeline._index.documents]  # type: ignore[union-attr]
        assert min(sizes[:-1]) >= 135

    def test_reinitialize_replaces_chunks(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(
            generator, PipelineConfig(chunk_size=60, chunk_overlap=10, top_k=50)
        )
        pipeline.initialize("alpha channel " * 40)
        pipeline.initialize("bravo signal " * 40)

        hits = pipeline.retrieve("alpha channel").hits
        assert hits
        assert all("alpha" not in h.text for h in hits)
        assert all(h.score == 0 for h in hits)
        assert len(hits) == pipeline.chunk_count
        assert "bravo" in " ".join(h.text for h in hits)


class TestQuery:
    @pytest.mark.asyncio
    async def test_end_to_end(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())

        top = pipeline.retrieve("What is quantum entanglement?").hits[0]
        answer = await pipeline.query("What is quantum entanglement?", "model-x")

        assert "quantum entanglement" in top.text
        assert top.score >= 1
        assert answer == "stub answer"
        assert len(generator.calls) == 1
        call = generator.calls[0]
        assert call.model_id == "model-x"
        assert call.question == "What is quantum entanglement?"
        assert top.text in call.context
        assert call.context.startswith(top.text)

    @pytest.mark.asyncio
    async def test_returns_answer_verbatim(self, generator: RecordingGenerator) -> None:
        generator.answer = "  Entanglement links particles.\n"
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())
        assert await pipeline.query("entanglement", "model-x") == "  Entanglement links particles.\n"

    @pytest.mark.asyncio
    async def test_ask_reports_hits(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())
        answer = await pipeline.ask("quantum", "model-x")
        assert answer.text == "stub answer"
        assert answer.model_id == "model-x"
        assert answer.retrieved.hits[0].score == 1
        assert answer.retrieved.context == generator.calls[0].context

    @pytest.mark.asyncio
    async def test_uses_configured_timeout(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator, PipelineConfig(generation_timeout=12.5))
        pipeline.initialize(_quantum_transcript())
        await pipeline.query("quantum", "model-x")
        await pipeline.query("quantum", "model-x", timeout=3.0)
        assert [c.timeout for c in generator.calls] == [12.5, 3.0]

    @pytest.mark.asyncio
    async def test_not_initialized(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        with pytest.raises(NotInitializedError):
            await pipeline.query("What is this about?", "model-x")
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_query_after_failed_initialize(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        with pytest.raises(InvalidTranscriptError):
            pipeline.initialize("")
        with pytest.raises(NotInitializedError):
            await pipeline.query("anything at all", "model-x")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("question", ["", "   ", "\n\t"])
    async def test_blank_question(self, generator: RecordingGenerator, question: str) -> None:
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())
        with pytest.raises(InvalidQueryError):
            await pipeline.query(question, "model-x")
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_blank_model_id(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())
        with pytest.raises(InvalidQueryError):
            await pipeline.query("quantum", " ")
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_fallback_context_when_no_hits(self, generator: RecordingGenerator) -> None:
        config = PipelineConfig(chunk_size=40, chunk_overlap=0, top_k=0, fallback_count=2)
        pipeline = RetrievalPipeline(generator, config)
        pipeline.initialize("a" * 40 + "b" * 40 + "c" * 40)
        await pipeline.query("anything", "model-x")
        assert generator.calls[0].context == "a" * 40 + "\n\n" + "b" * 40

    @pytest.mark.asyncio
    async def test_no_context_available(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator)
        pipeline._index = LexicalIndex.build([])
        with pytest.raises(NoContextAvailableError) as exc_info:
            await pipeline.query("anything", "model-x")
        assert exc_info.value.stage == "assemble"
        assert generator.calls == []

    @pytest.mark.asyncio
    async def test_context_never_empty(self, generator: RecordingGenerator) -> None:
        pipeline = RetrievalPipeline(generator, PipelineConfig(chunk_size=25, chunk_overlap=5))
        pipeline.initialize("tiny but valid transcript text")
        await pipeline.query("nothing matches here", "model-x")
        assert generator.calls[0].context


class TestGenerationErrors:
    @pytest.mark.asyncio
    async def test_timeout(self, generator: RecordingGenerator) -> None:
        generator.delay = 5.0
        pipeline = RetrievalPipeline(generator, PipelineConfig(generation_timeout=0.05))
        pipeline.initialize(_quantum_transcript())

        with pytest.raises(GenerationTimeoutError) as exc_info:
            await pipeline.query("quantum", "model-x")

        assert exc_info.value.kind is ErrorKind.GENERATION_TIMEOUT
        assert exc_info.value.stage == "generate"
        assert pipeline.state is PipelineState.READY

    @pytest.mark.asyncio
    async def test_provider_error_is_classified(self, generator: RecordingGenerator) -> None:
        request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
        upstream = openai.RateLimitError(
            "Rate limit reached", response=httpx.Response(429, request=request), body=None
        )
        generator.error = upstream
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())

        with pytest.raises(GenerationFailureError) as exc_info:
            await pipeline.query("quantum", "model-x")

        err = exc_info.value
        assert err.reason is FailureReason.RATE_LIMITED
        assert err.cause is upstream
        assert err.__cause__ is upstream
        assert err.stage == "generate"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_wrapped(self, generator: RecordingGenerator) -> None:
        generator.error = RuntimeError("socket exploded")
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())

        with pytest.raises(GenerationFailureError) as exc_info:
            await pipeline.query("quantum", "model-x")

        assert exc_info.value.reason is FailureReason.UPSTREAM
        assert "socket exploded" not in exc_info.value.message

    @pytest.mark.asyncio
    async def test_recovers_after_failure(self, generator: RecordingGenerator) -> None:
        generator.error = RuntimeError("boom")
        pipeline = RetrievalPipeline(generator)
        pipeline.initialize(_quantum_transcript())
        with pytest.raises(GenerationFailureError):
            await pipeline.query("quantum", "model-x")

        generator.error = None
        assert await pipeline.query("quantum", "model-x") == "stub answer"


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_in_flight_query_keeps_its_snapshot(self) -> None:
        gated = GatedGenerator()
        pipeline = RetrievalPipeline(gated, PipelineConfig(chunk_size=60, chunk_overlap=10))
        pipeline.initialize("alpha channel " * 20)

        first = asyncio.create_task(pipeline.query("channel", "model-x"))
        await gated.started.wait()
        pipeline.initialize("bravo channel " * 20)
        gated.release.set()
        await first

        second = await pipeline.query("channel", "model-x")

        assert "alpha" in gated.contexts[0]
        assert "bravo" not in gated.contexts[0]
        assert "bravo" in gated.contexts[1]
        assert "alpha" not in gated.contexts[1]
        assert second == "answer from 2"

    @pytest.mark.asyncio
    async def test_cancellation_reaches_generator(self) -> None:
        gated = GatedGenerator()
        pipeline = RetrievalPipeline(gated)
        pipeline.initialize(_quantum_transcript())

        task = asyncio.create_task(pipeline.query("quantum", "model-x"))
        await gated.started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert gated.cancelled
        assert pipeline.state is PipelineState.READY
