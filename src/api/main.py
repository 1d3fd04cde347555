from typing import Any, Dict, List

from fastapi import FastAPI
from pydantic import BaseModel, Field

from models.entry import ClipboardEntry
from services.clipboard_service import ClipboardManager


class TextBody(BaseModel):
    text: str = Field(min_length=1)


def create_app(manager: ClipboardManager, store: Any) -> FastAPI:
    app = FastAPI(title="ClipVault")

    @app.get("/")
    def root():
        return "running"

    @app.get("/entries")
    async def list_entries(limit: int = 50) -> List[ClipboardEntry]:
        return await store.recent(limit)

    @app.post("/copy")
    async def copy_text(body: TextBody) -> Dict[str, Any]:
        try:
            return {"ok": await manager.copy_text(body.text)}
        except Exception as e:
            return {"error": str(e)}

    @app.post("/paste")
    async def paste_text(body: TextBody) -> Dict[str, Any]:
        try:
            return {"ok": await manager.paste_text(body.text)}
        except Exception as e:
            return {"error": str(e)}

    @app.post("/entries/{item_id}/paste")
    async def paste_entry(item_id: str) -> Dict[str, Any]:
        entry = await store.get(item_id)
        if entry is None:
            return {"error": "entry not found"}

        try:
            ok = await manager.paste_entry(entry)
        except Exception as e:
            return {"error": str(e)}

        if ok and hasattr(store, "touch"):
            await store.touch(entry)
        return {"ok": ok, "itemId": entry.id}

    return app
