"""Memory store configuration models."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, model_validator

from .env_config import env_config


class HistoryConfig(BaseModel):
    """History log storage configuration."""

    db_path: str = Field(default_factory=lambda: env_config.history_db_path)

    @model_validator(mode="after")
    def _validate_path(self) -> "HistoryConfig":
        if self.db_path == ":memory:":
            return self
        normalized = os.path.normpath(self.db_path)
        parts = normalized.replace("\\", "/").split("/")
        if ".." in parts:
            raise ValueError(
                f"db_path must not contain '..' components: {self.db_path!r}"
            )
        self.db_path = normalized
        return self


DEFAULT_EMBEDDING_MODELS = {
    "local": "nomic-ai/nomic-embed-text-v2-moe",
    "openai": "text-embedding-3-small",
}


class EmbeddingConfig(BaseModel):
    """Embedding model configuration.

    ``model`` falls back to MEMLOOM_EMBEDDING_MODEL, then to the provider's
    default. ``dimension`` is only sent to OpenAI when set explicitly.
    """

    provider: str = "local"  # "local" or "openai"
    model: str | None = Field(default_factory=lambda: env_config.embedding_model)
    dimension: int | None = None
    trust_remote_code: bool = False

    @model_validator(mode="after")
    def _apply_provider_defaults(self) -> "EmbeddingConfig":
        if self.provider not in DEFAULT_EMBEDDING_MODELS:
            raise ValueError(
                f"Unknown embedding provider {self.provider!r}, "
                f"expected one of {sorted(DEFAULT_EMBEDDING_MODELS)}"
            )
        if self.model is None:
            self.model = DEFAULT_EMBEDDING_MODELS[self.provider]
        if self.dimension is None and self.provider == "local":
            self.dimension = 768
        return self


class LLMConfig(BaseModel):
    """Generation model configuration."""

    model: str = Field(default_factory=lambda: env_config.llm_model)
    base_url: str | None = Field(default_factory=lambda: env_config.openai_base_url)
    temperature: float = 0.1
    max_tokens: int | None = None


class SearchConfig(BaseModel):
    """Candidate retrieval configuration."""

    candidate_limit: int = 5  # neighbors fetched per extracted fact
    default_limit: int = 100


class MemoryConfig(BaseModel):
    """Top-level memory store configuration."""

    version: str = "v1.1"
    custom_prompt: str | None = None
    disable_history: bool = False
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
