"""
memloom test fixtures
Shared fixtures and mock ports.
"""
import json
from unittest.mock import AsyncMock

import pytest

from memloom.history import InMemoryHistoryManager
from memloom.memory import Memory
from memloom.vector_stores import InMemoryVectorStore

FIXED_VECTOR = [0.1, 0.2, 0.3]


class RecordingVectorStore(InMemoryVectorStore):
    """In-memory store that records every port call by name."""

    MUTATIONS = {"insert", "update", "delete", "delete_col"}

    def __init__(self):
        super().__init__()
        self.calls: list[tuple[str, tuple]] = []

    @property
    def mutation_calls(self) -> list[tuple[str, tuple]]:
        return [call for call in self.calls if call[0] in self.MUTATIONS]

    async def insert(self, vectors, ids, payloads):
        self.calls.append(("insert", (vectors, ids, payloads)))
        await super().insert(vectors, ids, payloads)

    async def search(self, query, limit, filters=None):
        self.calls.append(("search", (query, limit, filters)))
        return await super().search(query, limit, filters)

    async def get(self, vector_id):
        self.calls.append(("get", (vector_id,)))
        return await super().get(vector_id)

    async def update(self, vector_id, vector, payload):
        self.calls.append(("update", (vector_id, vector, payload)))
        await super().update(vector_id, vector, payload)

    async def delete(self, vector_id):
        self.calls.append(("delete", (vector_id,)))
        await super().delete(vector_id)

    async def delete_col(self):
        self.calls.append(("delete_col", ()))
        await super().delete_col()

    async def list(self, filters=None, limit=None):
        self.calls.append(("list", (filters, limit)))
        return await super().list(filters, limit)


def llm_responses(*responses) -> AsyncMock:
    """Mock LLM answering each generate_response() call with the next response.

    Dicts are JSON-encoded; strings are returned as-is.
    """
    mock = AsyncMock()
    mock.generate_response.side_effect = [
        json.dumps(r) if isinstance(r, dict) else r for r in responses
    ]
    return mock


@pytest.fixture
def mock_embedder():
    """Mock embedder returning a fixed vector"""
    mock = AsyncMock()
    mock.embed.return_value = FIXED_VECTOR
    mock.embed_batch.side_effect = lambda texts: [FIXED_VECTOR for _ in texts]
    return mock


@pytest.fixture
def vector_store():
    return RecordingVectorStore()


@pytest.fixture
def history_manager():
    return InMemoryHistoryManager()


@pytest.fixture
def make_memory(mock_embedder, vector_store, history_manager):
    """Factory building a Memory around the shared mock ports."""

    def _make(llm=None, config=None):
        return Memory(
            embedder=mock_embedder,
            vector_store=vector_store,
            llm=llm or llm_responses(),
            history_manager=history_manager,
            config=config,
        )

    return _make


async def seed_memory(store, text, memory_id="mem-1", **payload_extra):
    """Insert a stored memory directly, bypassing the engine."""
    payload = {
        "data": text,
        "hash": "seed-hash",
        "created_at": "2026-01-01T00:00:00+00:00",
        **payload_extra,
    }
    await InMemoryVectorStore.insert(store, [FIXED_VECTOR], [memory_id], [payload])
    return memory_id
