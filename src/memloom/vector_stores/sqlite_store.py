"""SQLite vector store backend.

Persists memory vectors and payloads using SQLite with aiosqlite for
async operations. Similarity search is brute-force cosine over every
record that passes the payload filter, which suits per-user stores of
a few thousand memories.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
from loguru import logger

from ..exceptions import StorageError
from ..models import VectorStoreResult
from .base import (
    cosine_scores,
    deserialize_embedding,
    matches_filters,
    serialize_embedding,
)

try:
    import aiosqlite
except ImportError:
    logger.warning(
        "aiosqlite not installed. SQLiteVectorStore will not be available. "
        "Install with: pip install aiosqlite"
    )
    aiosqlite = None


class SQLiteVectorStore:
    """SQLite-backed vector store.

    Vectors are stored as float32 BLOBs and payloads as JSON text.
    Uses WAL mode for concurrent reads.
    """

    def __init__(
        self,
        db_path: str = "./memory/vectors.db",
        collection_name: str = "memories",
    ):
        """Initialize SQLite vector store.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``
            collection_name: Table name for this collection
        """
        if aiosqlite is None:
            raise ImportError(
                "aiosqlite is required for SQLiteVectorStore. "
                "Install with: pip install aiosqlite"
            )
        if not collection_name.isidentifier():
            raise ValueError(
                f"collection_name must be a valid identifier: {collection_name!r}"
            )

        self.db_path = db_path
        self.collection_name = collection_name
        self._db: aiosqlite.Connection | None = None
        logger.info(
            f"SQLiteVectorStore initialized with db_path: {db_path}, "
            f"collection: {collection_name}"
        )

    async def initialize(self) -> None:
        """Create the collection table if it doesn't exist."""
        if self.db_path != ":memory:":
            db_dir = Path(self.db_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")
        await self._create_table()
        await self._db.commit()
        logger.info(f"Vector collection {self.collection_name} ready")

    async def _create_table(self) -> None:
        await self._db.execute(f"""
            CREATE TABLE IF NOT EXISTS {self.collection_name} (
                id TEXT PRIMARY KEY,
                vector BLOB NOT NULL,
                payload TEXT NOT NULL
            )
        """)

    def _require_db(self) -> aiosqlite.Connection:
        if not self._db:
            raise StorageError(
                "Vector database not initialized. Call initialize() first.",
                path=self.db_path,
            )
        return self._db

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("Vector database connection closed")

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
        db = self._require_db()
        await db.executemany(
            f"INSERT INTO {self.collection_name} (id, vector, payload) VALUES (?, ?, ?)",
            [
                (vector_id, serialize_embedding(vector), json.dumps(payload))
                for vector, vector_id, payload in zip(vectors, ids, payloads)
            ],
        )
        await db.commit()
        logger.debug(f"Inserted {len(ids)} vectors into {self.collection_name}")

    async def _load_rows(self) -> list[tuple[str, bytes, dict[str, Any]]]:
        db = self._require_db()
        async with db.execute(
            f"SELECT id, vector, payload FROM {self.collection_name} ORDER BY rowid"
        ) as cursor:
            rows = await cursor.fetchall()
            return [(row[0], row[1], json.loads(row[2])) for row in rows]

    async def search(
        self,
        query: list[float],
        limit: int,
        filters: dict[str, Any] | None = None,
    ) -> list[VectorStoreResult]:
        rows = [
            row for row in await self._load_rows()
            if matches_filters(row[2], filters)
        ]
        if not rows or limit <= 0:
            return []

        matrix = np.array(
            [deserialize_embedding(row[1]) for row in rows], dtype=np.float32
        )
        scores = cosine_scores(query, matrix)
        order = np.argsort(-scores, kind="stable")[:limit]

        return [
            VectorStoreResult(id=rows[i][0], payload=rows[i][2], score=float(scores[i]))
            for i in order
        ]

    async def get(self, vector_id: str) -> VectorStoreResult | None:
        db = self._require_db()
        async with db.execute(
            f"SELECT id, payload FROM {self.collection_name} WHERE id = ?",
            (vector_id,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return VectorStoreResult(id=row[0], payload=json.loads(row[1]))

    async def update(
        self,
        vector_id: str,
        vector: list[float],
        payload: dict[str, Any],
    ) -> None:
        db = self._require_db()
        await db.execute(
            f"UPDATE {self.collection_name} SET vector = ?, payload = ? WHERE id = ?",
            (serialize_embedding(vector), json.dumps(payload), vector_id),
        )
        await db.commit()

    async def delete(self, vector_id: str) -> None:
        db = self._require_db()
        await db.execute(
            f"DELETE FROM {self.collection_name} WHERE id = ?",
            (vector_id,),
        )
        await db.commit()

    async def delete_col(self) -> None:
        """Drop and recreate the collection table."""
        db = self._require_db()
        await db.execute(f"DROP TABLE IF EXISTS {self.collection_name}")
        await self._create_table()
        await db.commit()
        logger.info(f"Collection {self.collection_name} reset")

    async def list(
        self,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> tuple[list[VectorStoreResult], int]:
        matched = [
            VectorStoreResult(id=row[0], payload=row[2])
            for row in await self._load_rows()
            if matches_filters(row[2], filters)
        ]
        total = len(matched)
        if limit is not None:
            matched = matched[:limit]
        return matched, total
