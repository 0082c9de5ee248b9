"""OpenAI-compatible embedding backend."""

from __future__ import annotations

from loguru import logger

from ..env_config import env_config

try:
    from openai import AsyncOpenAI
except ImportError:
    logger.warning("openai not installed. Install with: pip install openai")
    AsyncOpenAI = None


class OpenAIEmbedder:
    """Embedder backed by the OpenAI embeddings API (or a compatible server)."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        base_url: str | None = None,
        dimensions: int | None = None,
        client=None,
    ):
        """Initialize embedder.

        Args:
            api_key: API key (defaults to MEMLOOM_OPENAI_API_KEY)
            model: Embedding model name
            base_url: API base URL (defaults to MEMLOOM_OPENAI_BASE_URL)
            dimensions: Optional output dimension for models that support it
            client: Pre-built ``AsyncOpenAI`` client, mainly for tests
        """
        if client is None:
            if AsyncOpenAI is None:
                raise ImportError(
                    "openai is required for OpenAIEmbedder. "
                    "Install with: pip install openai"
                )
            client = AsyncOpenAI(
                api_key=api_key or env_config.openai_api_key,
                base_url=base_url or env_config.openai_base_url,
            )
        self._client = client
        self._model = model
        self._dimensions = dimensions
        logger.debug(f"OpenAIEmbedder initialized (model: {model})")

    def _request_kwargs(self) -> dict:
        kwargs = {"model": self._model}
        if self._dimensions is not None:
            kwargs["dimensions"] = self._dimensions
        return kwargs

    async def embed(self, text: str) -> list[float]:
        response = await self._client.embeddings.create(
            input=text, **self._request_kwargs()
        )
        return response.data[0].embedding

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        response = await self._client.embeddings.create(
            input=texts, **self._request_kwargs()
        )
        return [item.embedding for item in response.data]
