"""Core data models for the memory store."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _uuid() -> str:
    return str(uuid4())


SCOPE_KEYS = ("user_id", "agent_id", "run_id")


class MemoryEvent(str, Enum):
    ADD = "ADD"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    NONE = "NONE"


class Message(BaseModel):
    """A single role-tagged conversation message.

    ``content`` is plain text, a content part or list of parts
    (e.g. ``{"type": "image_url", ...}``), or ``None`` for tool-call turns.
    Only plain text is remembered.
    """

    role: str  # "user", "assistant", "system", "tool"
    content: str | list[dict[str, Any]] | dict[str, Any] | None = None

    @property
    def text(self) -> str | None:
        return self.content if isinstance(self.content, str) else None


class VectorStoreResult(BaseModel):
    """A record as returned by a vector store."""

    id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    score: float | None = None


class MemoryAction(BaseModel):
    """One reconciliation decision returned by the LLM."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    event: str
    text: str | None = None
    old_memory: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        # Models sometimes answer with bare integers for ordinal ids
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("event", mode="before")
    @classmethod
    def _normalize_event(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class MemoryItem(BaseModel):
    """Caller-facing view of a stored memory."""

    id: str
    memory: str | None = None
    hash: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    user_id: str | None = None
    agent_id: str | None = None
    run_id: str | None = None


class SearchResult(BaseModel):
    """Result envelope for ``add``, ``search`` and ``get_all``."""

    results: list[MemoryItem] = Field(default_factory=list)


class HistoryEntry(BaseModel):
    """Immutable audit record of a value transition for one memory."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_uuid)
    memory_id: str
    previous_value: str | None = None
    new_value: str | None = None
    action: str
    created_at: str = Field(default_factory=utcnow_iso)
    updated_at: str | None = None
    is_deleted: int = 0
