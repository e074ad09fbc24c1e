"""Per-session pipeline registry."""

from __future__ import annotations

import logging

from src.pipeline_config import PipelineConfig
from src.retrieval.generation import AnswerGenerator
from src.retrieval.pipeline import RetrievalPipeline

logger = logging.getLogger(__name__)


class SessionStore:
    """Maps session ids to independent :class:`RetrievalPipeline` instances."""

    def __init__(self, config: PipelineConfig | None = None) -> None:
        self._config = config or PipelineConfig()
        self._pipelines: dict[str, RetrievalPipeline] = {}

    def get(self, session_id: str) -> RetrievalPipeline | None:
        return self._pipelines.get(session_id)

    def get_or_create(self, session_id: str, generator: AnswerGenerator) -> RetrievalPipeline:
        pipeline = self._pipelines.get(session_id)
        if pipeline is None:
            pipeline = RetrievalPipeline(generator, self._config)
            self._pipelines[session_id] = pipeline
            logger.info("Created pipeline for session %s", session_id)
        return pipeline

    def remove(self, session_id: str) -> bool:
        """Drop a session; return False if it did not exist."""
        return self._pipelines.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._pipelines)
