"""Local embedding backend using sentence-transformers.

Lazy-loads the model on first use to avoid startup overhead. Encoding
runs in a worker thread so the event loop is not blocked.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

from ..config import EmbeddingConfig

if TYPE_CHECKING:
    import numpy as np


class SentenceTransformerEmbedder:
    """Embedder using sentence-transformers.

    Features:
    - Lazy model loading (only when first embedding is requested)
    - Batch encoding for efficiency
    - Normalized output vectors
    """

    def __init__(self, config: EmbeddingConfig | None = None):
        """Initialize embedder.

        Args:
            config: Embedding configuration
        """
        self._config = config or EmbeddingConfig()
        self._model = None
        self._dimension = self._config.dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def _ensure_model(self) -> None:
        """Lazy-load the sentence-transformers model."""
        if self._model is not None:
            return

        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            raise ImportError(
                "sentence-transformers is required for SentenceTransformerEmbedder. "
                "Install with: pip install sentence-transformers"
            )

        logger.info(f"Loading embedding model: {self._config.model}")
        self._model = SentenceTransformer(
            self._config.model,
            trust_remote_code=self._config.trust_remote_code,
        )
        # Update dimension from actual model
        self._dimension = self._model.get_sentence_embedding_dimension()
        logger.info(f"Embedding model loaded: dim={self._dimension}")

    def _encode(self, texts: list[str]) -> list[list[float]]:
        self._ensure_model()
        embeddings: np.ndarray = self._model.encode(
            texts, batch_size=32, show_progress_bar=False,
            normalize_embeddings=True,
        )
        return embeddings.tolist()

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Encode texts into embedding vectors.

        Args:
            texts: List of text strings to encode

        Returns:
            List of embedding vectors (each a list of floats)
        """
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, texts)

    async def embed(self, text: str) -> list[float]:
        results = await self.embed_batch([text])
        return results[0] if results else []
