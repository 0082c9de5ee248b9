"""Embedding backends implementing the ``Embedder`` port."""

from .openai_embedder import OpenAIEmbedder
from .sentence_transformer import SentenceTransformerEmbedder

__all__ = ["OpenAIEmbedder", "SentenceTransformerEmbedder"]
