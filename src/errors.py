"""Error taxonomy for the transcript retrieval pipeline."""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    """Classification of a pipeline failure."""

    INVALID_TRANSCRIPT = "invalid_transcript"
    INVALID_PARAMETER = "invalid_parameter"
    NOT_INITIALIZED = "not_initialized"
    INVALID_QUERY = "invalid_query"
    NO_CONTEXT_AVAILABLE = "no_context_available"
    GENERATION_TIMEOUT = "generation_timeout"
    GENERATION_FAILURE = "generation_failure"


class FailureReason(StrEnum):
    """Why the external answer generator failed."""

    AUTHENTICATION = "authentication"
    RATE_LIMITED = "rate_limited"
    INVALID_MODEL = "invalid_model"
    NETWORK = "network"
    UPSTREAM = "upstream"


class PipelineError(Exception):
    """Base class for every error the pipeline reports to its caller.

    Attributes:
        kind: Taxonomy entry for this failure.
        stage: Pipeline stage that failed (``"initialize"``, ``"search"``,
            ``"assemble"`` or ``"generate"``), if known.
        cause: The underlying exception, kept for diagnostics.
    """

    kind: ErrorKind = ErrorKind.GENERATION_FAILURE

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.cause = cause

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class InvalidTranscriptError(PipelineError):
    kind = ErrorKind.INVALID_TRANSCRIPT


class InvalidParameterError(PipelineError):
    kind = ErrorKind.INVALID_PARAMETER


class NotInitializedError(PipelineError):
    kind = ErrorKind.NOT_INITIALIZED


class InvalidQueryError(PipelineError):
    kind = ErrorKind.INVALID_QUERY


class NoContextAvailableError(PipelineError):
    kind = ErrorKind.NO_CONTEXT_AVAILABLE


class GenerationTimeoutError(PipelineError):
    kind = ErrorKind.GENERATION_TIMEOUT


class GenerationFailureError(PipelineError):
    """The answer generator failed for a reason other than a timeout."""

    kind = ErrorKind.GENERATION_FAILURE

    def __init__(
        self,
        message: str,
        *,
        reason: FailureReason = FailureReason.UPSTREAM,
        stage: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, stage=stage, cause=cause)
        self.reason = reason
