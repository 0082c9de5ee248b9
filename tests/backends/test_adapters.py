"""Tests for the OpenAI and sentence-transformers adapters (no network)."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest

from memloom.config import EmbeddingConfig, LLMConfig, MemoryConfig
from memloom.embeddings import OpenAIEmbedder, SentenceTransformerEmbedder
from memloom.env_config import env_config
from memloom.history import NoopHistoryManager, SQLiteHistoryManager
from memloom.interfaces import LLM, Embedder
from memloom.llms import OpenAILLM
from memloom.memory import Memory
from memloom.vector_stores import InMemoryVectorStore


def _completion(content=None, tool_calls=None):
    message = SimpleNamespace(content=content, role="assistant", tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    client.embeddings.create = AsyncMock()
    return client


class TestOpenAILLM:
    @pytest.mark.asyncio
    async def test_text_response(self, openai_client):
        openai_client.chat.completions.create.return_value = _completion('{"facts": []}')
        llm = OpenAILLM(LLMConfig(model="test-model"), client=openai_client)

        response = await llm.generate_response(
            [{"role": "user", "content": "hi"}],
            response_format={"type": "json_object"},
        )

        assert response == '{"facts": []}'
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "tools" not in kwargs

    @pytest.mark.asyncio
    async def test_tool_calls(self, openai_client):
        call = SimpleNamespace(
            function=SimpleNamespace(name="lookup", arguments='{"q": "x"}')
        )
        openai_client.chat.completions.create.return_value = _completion(
            None, tool_calls=[call]
        )
        llm = OpenAILLM(client=openai_client)
        tools = [{"type": "function", "function": {"name": "lookup"}}]

        response = await llm.generate_response(
            [{"role": "user", "content": [{"type": "text", "text": "hi"}]}],
            tools=tools,
        )

        assert response == {
            "content": "",
            "role": "assistant",
            "tool_calls": [{"name": "lookup", "arguments": '{"q": "x"}'}],
        }
        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["tool_choice"] == "auto"
        assert kwargs["messages"][0]["content"] == '[{"type": "text", "text": "hi"}]'

    def test_satisfies_protocol(self, openai_client):
        assert isinstance(OpenAILLM(client=openai_client), LLM)


class TestOpenAIEmbedder:
    @pytest.mark.asyncio
    async def test_embed_and_batch(self, openai_client):
        openai_client.embeddings.create.side_effect = [
            SimpleNamespace(data=[SimpleNamespace(embedding=[0.1, 0.2])]),
            SimpleNamespace(data=[
                SimpleNamespace(embedding=[0.1, 0.2]),
                SimpleNamespace(embedding=[0.3, 0.4]),
            ]),
        ]
        embedder = OpenAIEmbedder(model="emb", dimensions=2, client=openai_client)

        assert await embedder.embed("a") == [0.1, 0.2]
        assert await embedder.embed_batch(["a", "b"]) == [[0.1, 0.2], [0.3, 0.4]]

        first = openai_client.embeddings.create.call_args_list[0].kwargs
        assert first == {"input": "a", "model": "emb", "dimensions": 2}

    @pytest.mark.asyncio
    async def test_empty_batch_skips_request(self, openai_client):
        embedder = OpenAIEmbedder(client=openai_client)
        assert await embedder.embed_batch([]) == []
        openai_client.embeddings.create.assert_not_called()


class TestSentenceTransformerEmbedder:
    @pytest.mark.asyncio
    async def test_encodes_with_loaded_model(self):
        embedder = SentenceTransformerEmbedder(EmbeddingConfig(dimension=2))
        model = MagicMock()
        model.encode.return_value = np.array([[0.6, 0.8], [1.0, 0.0]])
        embedder._model = model

        assert await embedder.embed_batch(["a", "b"]) == [[0.6, 0.8], [1.0, 0.0]]
        assert model.encode.call_args.kwargs["normalize_embeddings"] is True

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        embedder = SentenceTransformerEmbedder()
        assert await embedder.embed_batch([]) == []
        assert embedder._model is None

    def test_satisfies_protocol(self):
        assert isinstance(SentenceTransformerEmbedder(), Embedder)


class TestFromConfig:
    @pytest.mark.asyncio
    async def test_builds_default_stack(self, monkeypatch, tmp_path):
        monkeypatch.setattr(env_config, "openai_api_key", "test-key")
        config = MemoryConfig(history={"db_path": str(tmp_path / "history.db")})

        memory = await Memory.from_config(config)
        try:
            assert isinstance(memory.embedder, SentenceTransformerEmbedder)
            assert isinstance(memory.llm, OpenAILLM)
            assert isinstance(memory.vector_store, InMemoryVectorStore)
            assert isinstance(memory.db, SQLiteHistoryManager)
        finally:
            await memory.close()

    @pytest.mark.asyncio
    async def test_history_disabled_openai_embedder(self, monkeypatch):
        monkeypatch.setattr(env_config, "openai_api_key", "test-key")
        config = MemoryConfig(
            disable_history=True,
            embedding={"provider": "openai", "model": "text-embedding-3-small"},
        )

        memory = await Memory.from_config(config)

        assert isinstance(memory.embedder, OpenAIEmbedder)
        assert isinstance(memory.db, NoopHistoryManager)

    @pytest.mark.asyncio
    async def test_openai_embedder_uses_provider_defaults(self, monkeypatch):
        monkeypatch.setattr(env_config, "openai_api_key", "test-key")
        monkeypatch.setattr(env_config, "embedding_model", None)
        config = MemoryConfig(
            disable_history=True,
            embedding={"provider": "openai", "dimension": 256},
            llm={"base_url": "http://llm.local/v1"},
        )

        memory = await Memory.from_config(config)

        embedder = memory.embedder
        assert embedder._model == "text-embedding-3-small"
        assert embedder._request_kwargs() == {
            "model": "text-embedding-3-small",
            "dimensions": 256,
        }
        assert str(embedder._client.base_url).startswith("http://llm.local/v1")
