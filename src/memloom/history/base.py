"""Reference history managers: no-op and in-memory."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone

from ..models import HistoryEntry, utcnow_iso

MAX_HISTORY_ENTRIES = 100


def _created_at_key(entry: HistoryEntry) -> datetime:
    value = entry.created_at
    # fromisoformat() only accepts a "Z" suffix from Python 3.11 on
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    created = datetime.fromisoformat(value)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


class NoopHistoryManager:
    """History manager used when audit tracking is disabled."""

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
        return None

    async def get_history(self, memory_id: str) -> list[HistoryEntry]:
        return []

    async def reset(self) -> None:
        return None

    async def close(self) -> None:
        return None


class InMemoryHistoryManager:
    """Process-local history manager. Useful for tests and short-lived sessions."""

    def __init__(self) -> None:
        self._entries: dict[str, list[HistoryEntry]] = defaultdict(list)

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
        self._entries[memory_id].append(
            HistoryEntry(
                memory_id=memory_id,
                previous_value=previous_value,
                new_value=new_value,
                action=action,
                created_at=created_at or utcnow_iso(),
                updated_at=updated_at,
                is_deleted=is_deleted,
            )
        )

    async def get_history(self, memory_id: str) -> list[HistoryEntry]:
        # Ties resolve to the most recently appended entry first
        entries = list(reversed(self._entries.get(memory_id, [])))
        entries.sort(key=_created_at_key, reverse=True)
        return entries[:MAX_HISTORY_ENTRIES]

    async def reset(self) -> None:
        self._entries.clear()

    async def close(self) -> None:
        return None
