"""
memloom - reconciling semantic memory for conversational agents

Extracts durable facts from conversations, reconciles them against
previously stored memories (ADD / UPDATE / DELETE / NONE) and keeps an
auditable change history.
"""

from .config import MemoryConfig
from .exceptions import MemloomError, MemoryNotFoundError, StorageError, ValidationError
from .history import InMemoryHistoryManager, NoopHistoryManager
from .interfaces import LLM, Embedder, HistoryManager, VectorStore
from .memory import Memory, TempIdMap, format_memory_item
from .models import (
    HistoryEntry,
    MemoryAction,
    MemoryEvent,
    MemoryItem,
    Message,
    SearchResult,
    VectorStoreResult,
)
from .prompts import (
    get_fact_retrieval_messages,
    get_update_memory_messages,
    remove_code_blocks,
)

__all__ = [
    "Memory",
    "MemoryConfig",
    "TempIdMap",
    "format_memory_item",
    "Embedder",
    "LLM",
    "VectorStore",
    "HistoryManager",
    "NoopHistoryManager",
    "InMemoryHistoryManager",
    "HistoryEntry",
    "MemoryAction",
    "MemoryEvent",
    "MemoryItem",
    "Message",
    "SearchResult",
    "VectorStoreResult",
    "MemloomError",
    "MemoryNotFoundError",
    "StorageError",
    "ValidationError",
    "get_fact_retrieval_messages",
    "get_update_memory_messages",
    "remove_code_blocks",
]
