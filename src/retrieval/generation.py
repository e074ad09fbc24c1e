"""Answer generation over transcript context, with Groq and Claude backends."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import anthropic
import openai
from anthropic import AsyncAnthropic
from anthropic.types import TextBlock
from openai import AsyncOpenAI

from src.errors import (
    FailureReason,
    GenerationFailureError,
    GenerationTimeoutError,
    PipelineError,
)
from src.pipeline_config import GenerationProvider

if TYPE_CHECKING:
    from src.config import Settings

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions based on the provided "
    "context about a YouTube video."
)

USER_PROMPT_TEMPLATE = (
    "Context from video transcript: {context}\n\n"
    "Question: {question}\n\n"
    "Answer based only on the information in the context."
)


class AnswerGenerator(Protocol):
    """Produces a natural-language answer from a question and its context."""

    async def generate(self, model_id: str, question: str, context: str, timeout: float) -> str:
        ...


def build_user_prompt(question: str, context: str) -> str:
    return USER_PROMPT_TEMPLATE.format(context=context, question=question)


# Both SDKs share exception names; group them so classification is provider-agnostic.
_TIMEOUT_ERRORS: tuple[type[BaseException], ...] = (
    asyncio.TimeoutError,
    openai.APITimeoutError,
    anthropic.APITimeoutError,
)
_AUTH_ERRORS: tuple[type[BaseException], ...] = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    anthropic.AuthenticationError,
    anthropic.PermissionDeniedError,
)
_RATE_LIMIT_ERRORS: tuple[type[BaseException], ...] = (
    openai.RateLimitError,
    anthropic.RateLimitError,
)
_NOT_FOUND_ERRORS: tuple[type[BaseException], ...] = (
    openai.NotFoundError,
    anthropic.NotFoundError,
)
_BAD_REQUEST_ERRORS: tuple[type[BaseException], ...] = (
    openai.BadRequestError,
    anthropic.BadRequestError,
)
_CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIConnectionError,
    anthropic.APIConnectionError,
)
_API_ERRORS: tuple[type[BaseException], ...] = (
    openai.APIError,
    anthropic.APIError,
)


def classify_generation_error(exc: BaseException, stage: str = "generate") -> PipelineError:
    """Map a provider/transport exception onto the pipeline error taxonomy.

    The returned error keeps *exc* as its ``cause`` but its message carries
    no transport-specific detail.
    """
    if isinstance(exc, PipelineError):
        if exc.stage is None:
            exc.stage = stage
        return exc

    # Timeout subclasses the connection error in both SDKs; check it first.
    if isinstance(exc, _TIMEOUT_ERRORS):
        return GenerationTimeoutError(
            "Answer generation timed out", stage=stage, cause=exc
        )
    if isinstance(exc, _AUTH_ERRORS):
        reason, message = FailureReason.AUTHENTICATION, "Provider rejected the API credentials"
    elif isinstance(exc, _RATE_LIMIT_ERRORS):
        reason, message = FailureReason.RATE_LIMITED, "Provider rate limit exceeded"
    elif isinstance(exc, _NOT_FOUND_ERRORS):
        reason, message = FailureReason.INVALID_MODEL, "Requested model is not available"
    elif isinstance(exc, _BAD_REQUEST_ERRORS) and "model" in str(exc).lower():
        reason, message = FailureReason.INVALID_MODEL, "Requested model is not valid"
    elif isinstance(exc, _CONNECTION_ERRORS):
        reason, message = FailureReason.NETWORK, "Could not reach the generation provider"
    elif isinstance(exc, _API_ERRORS):
        reason, message = FailureReason.UPSTREAM, "Generation provider returned an error"
    else:
        reason, message = FailureReason.UPSTREAM, f"Answer generation failed ({type(exc).__name__})"

    return GenerationFailureError(message, reason=reason, stage=stage, cause=exc)


class GroqAnswerGenerator:
    """Answer generator backed by Groq's OpenAI-compatible chat completions API."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.groq.com/openai/v1",
        max_tokens: int = 1024,
        temperature: float = 0.1,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise GenerationFailureError(
                    "Groq API key is not set", reason=FailureReason.AUTHENTICATION
                )
            # Retry policy belongs to the caller, so the SDK must not retry on its own.
            self._client = AsyncOpenAI(
                api_key=self._api_key, base_url=self._base_url, max_retries=0
            )
        return self._client

    async def generate(self, model_id: str, question: str, context: str, timeout: float) -> str:
        client = self._get_client()
        response = await client.chat.completions.create(
            model=model_id,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_user_prompt(question, context)},
            ],
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            timeout=timeout,
        )
        content = response.choices[0].message.content
        if content is None:
            raise GenerationFailureError("Provider returned an empty completion")
        return content


class ClaudeAnswerGenerator:
    """Answer generator backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str = "",
        max_tokens: int = 1024,
        temperature: float = 0.1,
        client: AsyncAnthropic | None = None,
    ) -> None:
        self._api_key = api_key
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._client = client

    def _get_client(self) -> AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise GenerationFailureError(
                    "Anthropic API key is not set", reason=FailureReason.AUTHENTICATION
                )
            self._client = AsyncAnthropic(api_key=self._api_key, max_retries=0)
        return self._client

    async def generate(self, model_id: str, question: str, context: str, timeout: float) -> str:
        client = self._get_client()
        response = await client.messages.create(
            model=model_id,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": build_user_prompt(question, context)}],
            timeout=timeout,
        )

        # Narrow the content block type; we always request plain text.
        block = response.content[0]
        if not isinstance(block, TextBlock):
            raise GenerationFailureError(
                f"Expected TextBlock from Claude, got {type(block).__name__}"
            )
        return block.text


def build_answer_generator(settings: Settings) -> AnswerGenerator:
    """Create the answer generator selected by ``settings.generation_provider``."""
    provider = GenerationProvider(settings.generation_provider)
    if provider is GenerationProvider.ANTHROPIC:
        return ClaudeAnswerGenerator(
            api_key=settings.anthropic_api_key,
            max_tokens=settings.max_answer_tokens,
            temperature=settings.temperature,
        )
    return GroqAnswerGenerator(
        api_key=settings.groq_api_key,
        base_url=settings.groq_base_url,
        max_tokens=settings.max_answer_tokens,
        temperature=settings.temperature,
    )
