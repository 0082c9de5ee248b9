"""Shared helpers for the reference vector stores."""

from __future__ import annotations

import struct
from typing import Any

import numpy as np


def matches_filters(payload: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Return True when every supplied filter key equals the payload value.

    Filters are a conjunction. Keys whose filter value is None are ignored.
    """
    if not filters:
        return True
    return all(
        payload.get(key) == value
        for key, value in filters.items()
        if value is not None
    )


def cosine_scores(query: list[float], vectors: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against each row of ``vectors``.

    Zero-norm rows score 0.0.
    """
    if vectors.size == 0:
        return np.zeros(0, dtype=np.float32)

    q = np.asarray(query, dtype=np.float32)
    q_norm = np.linalg.norm(q)
    row_norms = np.linalg.norm(vectors, axis=1)
    denom = row_norms * q_norm
    dots = vectors @ q
    return np.divide(
        dots, denom, out=np.zeros_like(dots), where=denom > 0
    )


def serialize_embedding(embedding: list[float]) -> bytes:
    """Serialize embedding to bytes for SQLite BLOB storage (little-endian float32)."""
    return struct.pack(f"<{len(embedding)}f", *embedding)


def deserialize_embedding(blob: bytes) -> list[float]:
    """Deserialize embedding from a SQLite BLOB."""
    count = len(blob) // 4  # float32 = 4 bytes
    return list(struct.unpack(f"<{count}f", blob))
