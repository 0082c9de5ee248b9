"""
Collaborator port definitions.

Protocols keep the reconciliation engine decoupled from concrete
embedding, generation, vector store and history backends.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .models import HistoryEntry, VectorStoreResult


@runtime_checkable
class Embedder(Protocol):
    """Maps text to a fixed-dimension vector."""

    async def embed(self, text: str) -> list[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Embed several texts in one call.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in input order
        """
        ...


@runtime_checkable
class LLM(Protocol):
    """Generates text (or a tool-call response) from role-tagged messages."""

    async def generate_response(
        self,
        messages: list[dict[str, Any]],
        response_format: dict[str, str] | None = None,
        tools: list[dict[str, Any]] | None = None,
    ) -> str | dict[str, Any]:
        """
        Generate a response.

        Args:
            messages: Ordered ``{"role", "content"}`` dicts
            response_format: Advisory hint such as ``{"type": "json_object"}``
            tools: Optional tool specs

        Returns:
            Response text, or a structured dict when tools were invoked
        """
        ...


@runtime_checkable
class VectorStore(Protocol):
    """CRUD, similarity search and filtered listing over vector records."""

    async def insert(
        self,
        vectors: list[list[float]],
        ids: list[str],
        payloads: list[dict[str, Any]],
    ) -> None: ...

    async def search(
        self,
        query: list[float],
        limit: int,
        filters: dict[str, Any] | None = None,
    ) -> list[VectorStoreResult]:
        """Return up to ``limit`` records most similar to ``query``, best first."""
        ...

    async def get(self, vector_id: str) -> VectorStoreResult | None: ...

    async def update(
        self,
        vector_id: str,
        vector: list[float],
        payload: dict[str, Any],
    ) -> None: ...

    async def delete(self, vector_id: str) -> None: ...

    async def delete_col(self) -> None:
        """Drop every record in the collection."""
        ...

    async def list(
        self,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> tuple[list[VectorStoreResult], int]:
        """Return matching records and the total match count."""
        ...


@runtime_checkable
class HistoryManager(Protocol):
    """Append-only audit trail of memory value transitions."""

    async def add_history(
        self,
        memory_id: str,
        previous_value: str | None,
        new_value: str | None,
        action: str,
        created_at: str | None = None,
        updated_at: str | None = None,
        is_deleted: int = 0,
    ) -> None: ...

    async def get_history(self, memory_id: str) -> list[HistoryEntry]:
        """Return entries for ``memory_id``, newest first."""
        ...

    async def reset(self) -> None: ...

    async def close(self) -> None: ...
