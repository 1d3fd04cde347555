from __future__ import annotations

import datetime
import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import redis.asyncio as redis
import ulid

from models.entry import ClipboardEntry, ItemType
from services.settings import load_env_file

ENTRY_KEY = "clipboard:{}"
HISTORY_KEY = "clipboards"
INDEX_KEY = "clipboard:index"


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None

    @classmethod
    def from_env(cls, *, env_path: Optional[Path] = None) -> "RedisConfig":
        load_env_file(env_path)

        uri = os.getenv("REDIS_URI")
        if uri:
            return cls.from_uri(uri)

        host = os.getenv("REDIS_HOST", cls.host)
        port_raw = os.getenv("REDIS_PORT")
        db_raw = os.getenv("REDIS_DB")
        password = os.getenv("REDIS_PASSWORD") or None

        port = int(port_raw) if port_raw else cls.port
        db = int(db_raw) if db_raw else cls.db

        return cls(host=host, port=port, db=db, password=password)

    @classmethod
    def from_uri(cls, uri: str) -> "RedisConfig":
        parsed = urlparse(uri)
        if parsed.scheme not in {"redis", "rediss"}:
            raise ValueError(
                f"Unsupported Redis URI scheme: {parsed.scheme!r}")

        host = parsed.hostname or cls.host
        port = parsed.port or cls.port
        password = parsed.password or None
        db_fragment = parsed.path.lstrip("/")
        db = int(db_fragment) if db_fragment else cls.db

        return cls(host=host, port=port, db=db, password=password)

    def create_client(self) -> "redis.Redis":
        return redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )


def content_key(type: ItemType, content: str) -> str:
    digest = hashlib.md5(content.encode("utf-8")).hexdigest()
    return f"{type.value}:{digest}"


class RedisHistoryStore:
    """Clipboard history kept in Redis.

    Inserting content that is already stored moves the existing entry to the
    top of the history instead of creating a duplicate.
    """

    def __init__(
        self,
        client: Optional["redis.Redis"] = None,
        config: Optional[RedisConfig] = None,
    ) -> None:
        if client is None:
            config = config or RedisConfig.from_env()
            client = config.create_client()
        self.client = client

    async def connect(self) -> None:
        await self.client.ping()

    async def insert(
        self,
        type: ItemType,
        content: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[ClipboardEntry]:
        key = content_key(type, content)
        existing_id = await self.client.hget(INDEX_KEY, key)
        if existing_id:
            entry = await self.get(existing_id)
            if entry is not None:
                entry.datetime = datetime.datetime.now(datetime.timezone.utc)
                if metadata is not None:
                    entry.metadata = metadata
                await self._save(entry)
                await self.touch(entry)
                return entry

        entry = ClipboardEntry(
            id=f"i_{ulid.new()}",
            type=type,
            content=content,
            metadata=metadata,
        )
        await self._save(entry)

        pipe = self.client.pipeline()
        pipe.lpush(HISTORY_KEY, entry.id)
        pipe.hset(INDEX_KEY, key, entry.id)
        await pipe.execute()
        return entry

    async def _save(self, entry: ClipboardEntry) -> None:
        await self.client.hset(ENTRY_KEY.format(entry.id), mapping={
            "itemId": entry.id,
            "type": entry.type.value,
            "content": entry.content,
            "metadata": json.dumps(entry.metadata),
            "datetime": entry.datetime.isoformat(),
        })

    async def get(self, item_id: str) -> Optional[ClipboardEntry]:
        data = await self.client.hgetall(ENTRY_KEY.format(item_id))
        if not data:
            return None

        return ClipboardEntry(
            id=data["itemId"],
            type=ItemType(data["type"]),
            content=data["content"],
            metadata=json.loads(data.get("metadata") or "null"),
            datetime=datetime.datetime.fromisoformat(data["datetime"]),
        )

    async def recent(self, limit: int = 50) -> List[ClipboardEntry]:
        item_ids = await self.client.lrange(HISTORY_KEY, 0, limit - 1)

        entries = []
        for item_id in item_ids:
            entry = await self.get(item_id)
            if entry:
                entries.append(entry)
        return entries

    async def touch(self, entry: ClipboardEntry) -> None:
        pipe = self.client.pipeline()
        pipe.hset(ENTRY_KEY.format(entry.id), "datetime", entry.datetime.isoformat())
        pipe.lrem(HISTORY_KEY, 0, entry.id)
        pipe.lpush(HISTORY_KEY, entry.id)
        await pipe.execute()

    async def delete(self, item_id: str) -> bool:
        entry = await self.get(item_id)
        if not entry:
            return False

        pipe = self.client.pipeline()
        pipe.lrem(HISTORY_KEY, 0, item_id)
        pipe.hdel(INDEX_KEY, content_key(entry.type, entry.content))
        pipe.delete(ENTRY_KEY.format(item_id))
        await pipe.execute()
        return True

    async def close(self) -> None:
        await self.client.aclose()
