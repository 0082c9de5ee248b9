"""Memory - reconciliation engine for the semantic memory store.

This module provides the ``Memory`` class that consuming applications use.
It turns free text or message lists into facts, reconciles them against
stored memories through the LLM, and applies the resulting ADD / UPDATE /
DELETE decisions to the vector store while recording an audit history.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
from typing import Any
from uuid import uuid4

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .config import MemoryConfig
from .exceptions import MemoryNotFoundError, ValidationError
from .history import NoopHistoryManager
from .interfaces import LLM, Embedder, HistoryManager, VectorStore
from .models import (
    SCOPE_KEYS,
    HistoryEntry,
    MemoryAction,
    MemoryEvent,
    MemoryItem,
    Message,
    SearchResult,
    VectorStoreResult,
    utcnow_iso,
)
from .prompts import (
    get_fact_retrieval_messages,
    get_update_memory_messages,
    remove_code_blocks,
)

JSON_RESPONSE_FORMAT = {"type": "json_object"}

SCOPE_REQUIRED_MESSAGE = "One of the filters: user_id, agent_id or run_id is required!"
DELETE_ALL_SCOPE_MESSAGE = (
    "At least one filter is required. Use reset() to delete all memories."
)

# Payload keys surfaced as MemoryItem fields rather than metadata
_EXCLUDED_PAYLOAD_KEYS = frozenset(
    {"data", "hash", "created_at", "updated_at", *SCOPE_KEYS}
)


def content_hash(data: str) -> str:
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def format_memory_item(
    record: VectorStoreResult,
    include_score: bool = False,
) -> MemoryItem:
    """Project a stored record into the caller-facing view.

    Canonical and scope payload keys become fields; every other payload key
    is folded into ``metadata``.
    """
    payload = record.payload
    scope = {key: payload[key] for key in SCOPE_KEYS if payload.get(key)}
    return MemoryItem(
        id=record.id,
        memory=payload.get("data"),
        hash=payload.get("hash"),
        created_at=payload.get("created_at"),
        updated_at=payload.get("updated_at"),
        score=record.score if include_score else None,
        metadata={
            key: value
            for key, value in payload.items()
            if key not in _EXCLUDED_PAYLOAD_KEYS
        },
        **scope,
    )


class TempIdMap:
    """Ordinal id -> real memory id index for a single reconciliation call.

    Candidates are shown to the LLM under ordinals ("0", "1", ...) so the
    model never sees, and cannot invent, a real identifier.
    """

    def __init__(self) -> None:
        self._real_ids: dict[str, str] = {}

    def __len__(self) -> int:
        return len(self._real_ids)

    def assign(self, real_id: str) -> str:
        temp_id = str(len(self._real_ids))
        self._real_ids[temp_id] = real_id
        return temp_id

    def resolve(self, temp_id: str | None) -> str:
        if temp_id is None or temp_id not in self._real_ids:
            raise MemoryNotFoundError(str(temp_id))
        return self._real_ids[temp_id]


def _resolve_scope(
    user_id: str | None,
    agent_id: str | None,
    run_id: str | None,
    metadata: dict[str, Any] | None = None,
    filters: dict[str, Any] | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Merge explicit scope fields into copies of ``metadata`` and ``filters``."""
    metadata = dict(metadata or {})
    filters = dict(filters or {})
    for key, value in zip(SCOPE_KEYS, (user_id, agent_id, run_id)):
        if value:
            metadata[key] = value
            filters[key] = value
    return metadata, filters


def _require_scope(filters: dict[str, Any], message: str) -> None:
    if not any(filters.get(key) for key in SCOPE_KEYS):
        raise ValidationError(message, field="filters")


def _parse_messages(
    messages: str | dict[str, Any] | Message | list[dict[str, Any] | Message],
) -> list[Message]:
    if isinstance(messages, str):
        return [Message(role="user", content=messages)]
    if isinstance(messages, (dict, Message)):
        messages = [messages]
    return [
        m if isinstance(m, Message) else Message.model_validate(m)
        for m in messages
    ]


def _response_text(response: str | dict[str, Any]) -> str:
    if isinstance(response, dict):
        return response.get("content") or ""
    return response or ""


def _parse_json_list(raw: str, key: str) -> list[Any]:
    """Parse ``{key: [...]}`` from a model response.

    Malformed output is recoverable and yields an empty list.
    """
    text = remove_code_blocks(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse '{key}' JSON from LLM response: {e}")
        logger.debug(f"Raw response: {raw[:500]}")
        return []

    if not isinstance(data, dict) or not isinstance(data.get(key), list):
        logger.warning(f"LLM response has no '{key}' array")
        return []
    return data[key]


def _parse_actions(raw: str) -> list[MemoryAction]:
    actions: list[MemoryAction] = []
    for item in _parse_json_list(raw, "memory"):
        if not isinstance(item, dict):
            continue
        try:
            actions.append(MemoryAction.model_validate(item))
        except PydanticValidationError as e:
            logger.warning(f"Skipping malformed memory action {item!r}: {e}")
    return actions


class Memory:
    """Mutable, semantically-searchable memory store.

    Provides:
    - Fact extraction and LLM-driven reconciliation (``add``)
    - Scoped similarity search (``search``)
    - Direct CRUD (``get``, ``update``, ``delete``, ``get_all``, ``delete_all``)
    - Per-memory audit trail (``history``) and full wipe (``reset``)

    The engine performs no retries and holds no locks. Collaborator errors
    propagate, except malformed LLM JSON (treated as an empty result) and
    individual reconciliation actions, which fail independently.
    """

    def __init__(
        self,
        embedder: Embedder,
        vector_store: VectorStore,
        llm: LLM,
        history_manager: HistoryManager | None = None,
        config: MemoryConfig | None = None,
    ):
        """Initialize memory store.

        Args:
            embedder: Embedding backend
            vector_store: Vector store backend
            llm: Generation backend
            history_manager: Audit log (no-op when omitted or disabled in config)
            config: Memory configuration (uses defaults if not provided)
        """
        self.config = config or MemoryConfig()
        self.embedder = embedder
        self.vector_store = vector_store
        self.llm = llm
        if history_manager is None or self.config.disable_history:
            history_manager = NoopHistoryManager()
        self.db = history_manager

        logger.info(
            f"Memory initialized: history={type(self.db).__name__}, "
            f"custom_prompt={self.config.custom_prompt is not None}"
        )

    @classmethod
    async def from_config(
        cls,
        config: MemoryConfig | None = None,
        vector_store: VectorStore | None = None,
    ) -> Memory:
        """Build a Memory with the bundled OpenAI / sentence-transformers adapters.

        Args:
            config: Memory configuration
            vector_store: Vector store (defaults to a process-local store)

        Returns:
            Ready-to-use Memory instance
        """
        from .embeddings import OpenAIEmbedder, SentenceTransformerEmbedder
        from .history import SQLiteHistoryManager
        from .llms import OpenAILLM
        from .vector_stores import InMemoryVectorStore

        config = config or MemoryConfig()

        if config.embedding.provider == "openai":
            embedder = OpenAIEmbedder(
                model=config.embedding.model,
                base_url=config.llm.base_url,
                dimensions=config.embedding.dimension,
            )
        else:
            embedder = SentenceTransformerEmbedder(config.embedding)

        history_manager = None
        if not config.disable_history:
            history_manager = SQLiteHistoryManager(db_path=config.history.db_path)
            await history_manager.initialize()

        return cls(
            embedder=embedder,
            vector_store=vector_store or InMemoryVectorStore(),
            llm=OpenAILLM(config.llm),
            history_manager=history_manager,
            config=config,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def add(
        self,
        messages: str | dict[str, Any] | Message | list[dict[str, Any] | Message],
        *,
        user_id: str | None = None,
        agent_id: str | None = None,
        run_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        filters: dict[str, Any] | None = None,
        infer: bool = True,
    ) -> SearchResult:
        """Remember the content of ``messages`` under the given scope.

        With ``infer=True`` facts are extracted and reconciled against
        similar stored memories. With ``infer=False`` each text message is
        stored verbatim.

        Raises:
            ValidationError: No user_id, agent_id or run_id was supplied
        """
        metadata, filters = _resolve_scope(user_id, agent_id, run_id, metadata, filters)
        _require_scope(filters, SCOPE_REQUIRED_MESSAGE)

        parsed = _parse_messages(messages)
        if infer:
            results = await self._add_inferred(parsed, metadata, filters)
        else:
            results = await self._add_verbatim(parsed, metadata)

        logger.info(f"add() produced {len(results)} memory events (infer={infer})")
        return SearchResult(results=results)

    async def search(
        self,
        query: str,
        *,
        user_id: str | None = None,
        agent_id: str | None = None,
        run_id: str | None = None,
        limit: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> SearchResult:
        """Return memories most similar to ``query`` within the scope."""
        _, filters = _resolve_scope(user_id, agent_id, run_id, filters=filters)
        _require_scope(filters, SCOPE_REQUIRED_MESSAGE)

        if limit is None:
            limit = self.config.search.default_limit

        embedding = await self.embedder.embed(query)
        hits = await self.vector_store.search(embedding, limit, filters)
        return SearchResult(
            results=[format_memory_item(hit, include_score=True) for hit in hits]
        )

    async def get(self, memory_id: str) -> MemoryItem | None:
        record = await self.vector_store.get(memory_id)
        if record is None:
            return None
        return format_memory_item(record)

    async def update(self, memory_id: str, data: str) -> dict[str, str]:
        """Replace the text of a memory.

        Raises:
            MemoryNotFoundError: No memory with ``memory_id`` exists
        """
        embedding = await self.embedder.embed(data)
        await self._update_memory(memory_id, data, {data: embedding})
        return {"message": "Memory updated successfully!"}

    async def delete(self, memory_id: str) -> dict[str, str]:
        """Delete a memory.

        Raises:
            MemoryNotFoundError: No memory with ``memory_id`` exists
        """
        await self._delete_memory(memory_id)
        return {"message": "Memory deleted successfully!"}

    async def get_all(
        self,
        *,
        user_id: str | None = None,
        agent_id: str | None = None,
        run_id: str | None = None,
        limit: int | None = None,
    ) -> SearchResult:
        """List memories; an empty scope lists everything."""
        _, filters = _resolve_scope(user_id, agent_id, run_id)
        if limit is None:
            limit = self.config.search.default_limit

        records, _total = await self.vector_store.list(filters, limit)
        return SearchResult(results=[format_memory_item(r) for r in records])

    async def delete_all(
        self,
        *,
        user_id: str | None = None,
        agent_id: str | None = None,
        run_id: str | None = None,
    ) -> dict[str, str]:
        """Delete every memory in the scope, logging each deletion.

        Raises:
            ValidationError: No scope was supplied (use ``reset()`` instead)
        """
        _, filters = _resolve_scope(user_id, agent_id, run_id)
        _require_scope(filters, DELETE_ALL_SCOPE_MESSAGE)

        records, _total = await self.vector_store.list(filters)
        for record in records:
            await self._delete_memory(record.id)

        logger.info(f"delete_all() removed {len(records)} memories ({filters})")
        return {"message": "Memories deleted successfully!"}

    async def history(self, memory_id: str) -> list[HistoryEntry]:
        return await self.db.get_history(memory_id)

    async def reset(self) -> None:
        """Wipe the audit history and the whole vector collection."""
        await self.db.reset()
        await self.vector_store.delete_col()
        logger.info("Memory store reset")

    async def close(self) -> None:
        await self.db.close()

    # ------------------------------------------------------------------
    # Add pipeline
    # ------------------------------------------------------------------

    async def _add_verbatim(
        self,
        messages: list[Message],
        metadata: dict[str, Any],
    ) -> list[MemoryItem]:
        results: list[MemoryItem] = []
        for message in messages:
            if message.text is None:
                continue
            memory_id = await self._create_memory(message.text, {}, metadata)
            results.append(
                MemoryItem(
                    id=memory_id,
                    memory=message.text,
                    metadata={"event": MemoryEvent.ADD.value},
                )
            )
        return results

    async def _add_inferred(
        self,
        messages: list[Message],
        metadata: dict[str, Any],
        filters: dict[str, Any],
    ) -> list[MemoryItem]:
        facts = await self._extract_facts(messages)
        logger.debug(f"Extracted {len(facts)} facts")

        # Per-call embedding cache keyed by literal fact text
        embeddings: dict[str, list[float]] = {}
        candidates = await self._retrieve_candidates(facts, filters, embeddings)

        id_map = TempIdMap()
        existing = [
            {"id": id_map.assign(c.id), "text": c.payload.get("data", "")}
            for c in candidates
        ]
        logger.debug(f"Reconciling against {len(id_map)} candidate memories")

        actions = await self._decide_actions(existing, facts)

        results: list[MemoryItem] = []
        for action in actions:
            try:
                item = await self._apply_action(action, id_map, embeddings, metadata)
            except Exception:
                logger.exception(
                    f"Error processing memory action {action.event} "
                    f"(id={action.id!r})"
                )
                continue
            if item is not None:
                results.append(item)
        return results

    async def _extract_facts(self, messages: list[Message]) -> list[str]:
        transcript = "\n".join(m.text or "" for m in messages)
        system_prompt, user_prompt = get_fact_retrieval_messages(
            transcript, self.config.custom_prompt
        )
        response = await self.llm.generate_response(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            response_format=JSON_RESPONSE_FORMAT,
        )
        return [
            fact
            for fact in _parse_json_list(_response_text(response), "facts")
            if isinstance(fact, str) and fact.strip()
        ]

    async def _retrieve_candidates(
        self,
        facts: list[str],
        filters: dict[str, Any],
        embeddings: dict[str, list[float]],
    ) -> list[VectorStoreResult]:
        """Embed each fact and collect its nearest stored neighbors.

        Fills ``embeddings`` as a side effect. Neighbors are de-duplicated by
        id; the first occurrence (in fact order) wins.
        """
        unique_facts = list(dict.fromkeys(facts))

        async def _embed_and_search(fact: str):
            embedding = await self.embedder.embed(fact)
            hits = await self.vector_store.search(
                embedding, self.config.search.candidate_limit, filters
            )
            return fact, embedding, hits

        tasks = [asyncio.create_task(_embed_and_search(fact)) for fact in unique_facts]
        try:
            gathered = await asyncio.gather(*tasks)
        except BaseException:
            # No store call may outlive the failed add()
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        candidates: dict[str, VectorStoreResult] = {}
        for fact, embedding, hits in gathered:
            embeddings[fact] = embedding
            for hit in hits:
                candidates.setdefault(hit.id, hit)
        return list(candidates.values())

    async def _decide_actions(
        self,
        existing: list[dict[str, Any]],
        facts: list[str],
    ) -> list[MemoryAction]:
        prompt = get_update_memory_messages(existing, facts)
        response = await self.llm.generate_response(
            [{"role": "user", "content": prompt}],
            response_format=JSON_RESPONSE_FORMAT,
        )
        return _parse_actions(_response_text(response))

    async def _apply_action(
        self,
        action: MemoryAction,
        id_map: TempIdMap,
        embeddings: dict[str, list[float]],
        metadata: dict[str, Any],
    ) -> MemoryItem | None:
        event = action.event

        if event == MemoryEvent.ADD:
            text = _require_text(action)
            memory_id = await self._create_memory(text, embeddings, metadata)
            return MemoryItem(
                id=memory_id, memory=text, metadata={"event": event}
            )

        if event == MemoryEvent.UPDATE:
            text = _require_text(action)
            memory_id = id_map.resolve(action.id)
            previous = await self._update_memory(memory_id, text, embeddings, metadata)
            return MemoryItem(
                id=memory_id,
                memory=text,
                metadata={"event": event, "previous_memory": previous},
            )

        if event == MemoryEvent.DELETE:
            memory_id = id_map.resolve(action.id)
            previous = await self._delete_memory(memory_id)
            return MemoryItem(
                id=memory_id, memory=previous, metadata={"event": event}
            )

        if event != MemoryEvent.NONE:
            logger.warning(f"Ignoring unknown memory event {event!r}")
        return None

    # ------------------------------------------------------------------
    # Record mutations (each one is history-logged)
    # ------------------------------------------------------------------

    async def _embedding_for(
        self, data: str, embeddings: dict[str, list[float]]
    ) -> list[float]:
        if data in embeddings:
            return embeddings[data]
        return await self.embedder.embed(data)

    async def _create_memory(
        self,
        data: str,
        embeddings: dict[str, list[float]],
        metadata: dict[str, Any],
    ) -> str:
        memory_id = str(uuid4())
        embedding = await self._embedding_for(data, embeddings)

        payload = {
            **metadata,
            "data": data,
            "hash": content_hash(data),
            "created_at": utcnow_iso(),
        }
        await self.vector_store.insert([embedding], [memory_id], [payload])
        await self.db.add_history(
            memory_id, None, data, MemoryEvent.ADD.value,
            created_at=payload["created_at"],
        )
        logger.debug(f"Memory created: {memory_id}")
        return memory_id

    async def _update_memory(
        self,
        memory_id: str,
        data: str,
        embeddings: dict[str, list[float]],
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Rewrite a memory in place and return its previous text."""
        existing = await self.vector_store.get(memory_id)
        if existing is None:
            raise MemoryNotFoundError(memory_id)

        previous = existing.payload.get("data")
        embedding = await self._embedding_for(data, embeddings)
        updated_at = utcnow_iso()

        extra = {
            key: value
            for key, value in existing.payload.items()
            if key not in _EXCLUDED_PAYLOAD_KEYS
        }
        payload = {
            **extra,
            **(metadata or {}),
            "data": data,
            "hash": content_hash(data),
            "created_at": existing.payload.get("created_at"),
            "updated_at": updated_at,
        }
        # Scope never moves: the stored record keeps its original owners
        for key in SCOPE_KEYS:
            if existing.payload.get(key):
                payload[key] = existing.payload[key]

        await self.vector_store.update(memory_id, embedding, payload)
        await self.db.add_history(
            memory_id, previous, data, MemoryEvent.UPDATE.value,
            created_at=updated_at,
            updated_at=updated_at,
        )
        logger.debug(f"Memory updated: {memory_id}")
        return previous

    async def _delete_memory(self, memory_id: str) -> str | None:
        """Delete a memory and return its last text."""
        existing = await self.vector_store.get(memory_id)
        if existing is None:
            raise MemoryNotFoundError(memory_id)

        previous = existing.payload.get("data")
        await self.vector_store.delete(memory_id)
        await self.db.add_history(
            memory_id, previous, None, MemoryEvent.DELETE.value,
            is_deleted=1,
        )
        logger.debug(f"Memory deleted: {memory_id}")
        return previous


def _require_text(action: MemoryAction) -> str:
    if not isinstance(action.text, str) or not action.text.strip():
        raise ValueError(f"{action.event} action without text")
    return action.text
