import datetime
from typing import Any, Dict, List, Optional

import ulid

from database.redis_manager import content_key
from models.entry import ClipboardEntry, ItemType


class MemoryHistoryStore:
    """Process-local history used when Redis is disabled."""

    def __init__(self) -> None:
        self._entries: List[ClipboardEntry] = []

    async def insert(
        self,
        type: ItemType,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ClipboardEntry]:
        key = content_key(type, content)
        for entry in self._entries:
            if content_key(entry.type, entry.content) == key:
                entry.datetime = datetime.datetime.now(datetime.timezone.utc)
                if metadata is not None:
                    entry.metadata = metadata
                self._entries.remove(entry)
                self._entries.insert(0, entry)
                return entry

        entry = ClipboardEntry(
            id=f"i_{ulid.new()}",
            type=type,
            content=content,
            metadata=metadata,
        )
        self._entries.insert(0, entry)
        return entry

    async def get(self, item_id: str) -> Optional[ClipboardEntry]:
        for entry in self._entries:
            if entry.id == item_id:
                return entry
        return None

    async def recent(self, limit: int = 50) -> List[ClipboardEntry]:
        return list(self._entries[:limit])

    async def touch(self, entry: ClipboardEntry) -> None:
        if entry in self._entries:
            self._entries.remove(entry)
            self._entries.insert(0, entry)

    async def delete(self, item_id: str) -> bool:
        entry = await self.get(item_id)
        if entry is None:
            return False
        self._entries.remove(entry)
        return True

    async def close(self) -> None:
        self._entries.clear()
