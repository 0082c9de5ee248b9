"""Vector store backends.

Reference implementations of the ``VectorStore`` port: a process-local
store and an aiosqlite-backed one. Both rank by brute-force cosine
similarity.
"""

from __future__ import annotations

from .base import (
    cosine_scores,
    deserialize_embedding,
    matches_filters,
    serialize_embedding,
)
from .in_memory import InMemoryVectorStore

_HELPERS = ["cosine_scores", "deserialize_embedding", "matches_filters", "serialize_embedding"]

try:
    from .sqlite_store import SQLiteVectorStore

    __all__ = ["InMemoryVectorStore", "SQLiteVectorStore", *_HELPERS]
except ImportError:
    # aiosqlite not installed
    __all__ = ["InMemoryVectorStore", *_HELPERS]
