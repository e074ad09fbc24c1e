from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    groq_api_key: str = ""
    anthropic_api_key: str = ""  # Optional, only needed with generation_provider="anthropic"

    # Generation
    generation_provider: str = "groq"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    default_model: str = "llama3-8b-8192"
    max_answer_tokens: int = 1024
    temperature: float = 0.1
    generation_timeout: float = 30.0
    models_timeout: float = 10.0

    # Retrieval
    chunk_size: int = 1000
    chunk_overlap: int = 200
    top_k: int = 3
    fallback_count: int = 3
    min_token_length: int = 4

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
