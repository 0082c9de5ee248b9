"""SQLite history log backend.

Persists the per-memory audit trail using SQLite with aiosqlite for
async operations.
"""

from __future__ import annotations

from pathlib import Path
from uuid import uuid4

from loguru import logger

from ..exceptions import StorageError
from ..models import HistoryEntry, utcnow_iso
from .base import MAX_HISTORY_ENTRIES

try:
    import aiosqlite
except ImportError:
    logger.warning(
        "aiosqlite not installed. SQLiteHistoryManager will not be available. "
        "Install with: pip install aiosqlite"
    )
    aiosqlite = None


class SQLiteHistoryManager:
    """Durable history manager backed by a single ``history`` table.

    Uses WAL mode for concurrent reads. Entries are never updated after
    insertion; ``reset()`` is the only destructive operation.
    """

    def __init__(self, db_path: str = "./memory/history.db"):
        """Initialize SQLite history manager.

        Args:
            db_path: Path to SQLite database file, or ``":memory:"``
        """
        if aiosqlite is None:
            raise ImportError(
                "aiosqlite is required for SQLiteHistoryManager. "
                "Install with: pip install aiosqlite"
            )

        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        logger.info(f"SQLiteHistoryManager initialized with db_path: {db_path}")

    async def initialize(self) -> None:
        """Create the history table and index if they don't exist."""
        if self.db_path != ":memory:":
            db_dir = Path(self.db_path).parent
            db_dir.mkdir(parents=True, exist_ok=True)

        self._db = await aiosqlite.connect(self.db_path)
        await self._db.execute("PRAGMA journal_mode=WAL")

        await self._db.execute("""
            CREATE TABLE IF NOT EXISTS history (
                id TEXT PRIMARY KEY,
                memory_id TEXT NOT NULL,
                previous_value TEXT,
                new_value TEXT,
                action TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT,
                is_deleted INTEGER DEFAULT 0
            )
        """)
        await self._db.execute("""
            CREATE INDEX IF NOT EXISTS idx_history_memory
            ON history(memory_id, created_at)
        """)

        await self._db.commit()
        logger.info("History database initialized successfully")

    def _require_db(self) -> aiosqlite.Connection:
        if not self._db:
            raise StorageError(
                "History database not initialized. Call initialize() first.",
                path=self.db_path,
            )
        return self._db

    async def close(self) -> None:
        """Close database connection."""
        if self._db:
            await self._db.close()
            self._db = None
            logger.info("History database connection closed")

    async def add_history(
        self,
        memory_id: str,
        previous_value: str | None,
        new_value: str | None,
        action: str,
        created_at: str | None = None,
        updated_at: str | None = None,
        is_deleted: int = 0,
    ) -> None:
        db = self._require_db()
        await db.execute(
            """
            INSERT INTO history (
                id, memory_id, previous_value, new_value,
                action, created_at, updated_at, is_deleted
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(uuid4()),
                memory_id,
                previous_value,
                new_value,
                action,
                created_at or utcnow_iso(),
                updated_at,
                is_deleted,
            ),
        )
        await db.commit()
        logger.debug(f"History entry added: {action} {memory_id}")

    async def get_history(self, memory_id: str) -> list[HistoryEntry]:
        """Get history entries for a memory, newest first.

        Args:
            memory_id: Memory identifier

        Returns:
            At most ``MAX_HISTORY_ENTRIES`` entries
        """
        db = self._require_db()
        async with db.execute(
            """
            SELECT id, memory_id, previous_value, new_value,
                   action, created_at, updated_at, is_deleted
            FROM history
            WHERE memory_id = ?
            ORDER BY created_at DESC, rowid DESC
            LIMIT ?
            """,
            (memory_id, MAX_HISTORY_ENTRIES),
        ) as cursor:
            rows = await cursor.fetchall()
            return [
                HistoryEntry(
                    id=row[0],
                    memory_id=row[1],
                    previous_value=row[2],
                    new_value=row[3],
                    action=row[4],
                    created_at=row[5],
                    updated_at=row[6],
                    is_deleted=row[7],
                )
                for row in rows
            ]

    async def reset(self) -> None:
        """Delete every history entry."""
        db = self._require_db()
        cursor = await db.execute("DELETE FROM history")
        await db.commit()
        logger.info(f"History reset: {cursor.rowcount} entries removed")
