"""Process-local vector store."""

from __future__ import annotations

import copy
from typing import Any

import numpy as np
from loguru import logger

from ..models import VectorStoreResult
from .base import cosine_scores, matches_filters


class InMemoryVectorStore:
    """Dictionary-backed vector store with brute-force cosine search.

    Insertion order is preserved for ``list``. Payloads are deep-copied on
    the way in and out so callers cannot mutate stored records.
    """

    def __init__(self, collection_name: str = "memories"):
        self.collection_name = collection_name
        self._vectors: dict[str, np.ndarray] = {}
        self._payloads: dict[str, dict[str, Any]] = {}

    async def insert(
        self,
        vectors: list[list[float]],
        ids: list[str],
        payloads: list[dict[str, Any]],
    ) -> None:
        if not (len(vectors) == len(ids) == len(payloads)):
            raise ValueError(
                f"insert() length mismatch: {len(vectors)} vectors, "
                f"{len(ids)} ids, {len(payloads)} payloads"
            )
        for vector, vector_id, payload in zip(vectors, ids, payloads):
            self._vectors[vector_id] = np.asarray(vector, dtype=np.float32)
            self._payloads[vector_id] = copy.deepcopy(payload)
        logger.debug(f"Inserted {len(ids)} vectors into {self.collection_name}")

    async def search(
        self,
        query: list[float],
        limit: int,
        filters: dict[str, Any] | None = None,
    ) -> list[VectorStoreResult]:
        candidate_ids = [
            vector_id
            for vector_id, payload in self._payloads.items()
            if matches_filters(payload, filters)
        ]
        if not candidate_ids or limit <= 0:
            return []

        matrix = np.stack([self._vectors[vector_id] for vector_id in candidate_ids])
        scores = cosine_scores(query, matrix)
        order = np.argsort(-scores, kind="stable")[:limit]

        return [
            VectorStoreResult(
                id=candidate_ids[i],
                payload=copy.deepcopy(self._payloads[candidate_ids[i]]),
                score=float(scores[i]),
            )
            for i in order
        ]

    async def get(self, vector_id: str) -> VectorStoreResult | None:
        payload = self._payloads.get(vector_id)
        if payload is None:
            return None
        return VectorStoreResult(id=vector_id, payload=copy.deepcopy(payload))

    async def update(
        self,
        vector_id: str,
        vector: list[float],
        payload: dict[str, Any],
    ) -> None:
        self._vectors[vector_id] = np.asarray(vector, dtype=np.float32)
        self._payloads[vector_id] = copy.deepcopy(payload)

    async def delete(self, vector_id: str) -> None:
        self._vectors.pop(vector_id, None)
        self._payloads.pop(vector_id, None)

    async def delete_col(self) -> None:
        count = len(self._payloads)
        self._vectors.clear()
        self._payloads.clear()
        logger.info(f"Collection {self.collection_name} cleared ({count} vectors)")

    async def list(
        self,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> tuple[list[VectorStoreResult], int]:
        matched = [
            VectorStoreResult(id=vector_id, payload=copy.deepcopy(payload))
            for vector_id, payload in self._payloads.items()
            if matches_filters(payload, filters)
        ]
        total = len(matched)
        if limit is not None:
            matched = matched[:limit]
        return matched, total
