"""Clipboard manager for ClipVault.

Captures clipboard ownership changes, classifies the new content and hands it
to the history store. Also puts stored or ad-hoc content back on the
clipboard and optionally pastes it with synthetic keystrokes.
"""

import asyncio
import datetime
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Set

from clipboard.base import ClipboardBackend, SelectionType, Subscription
from models.clipboarditem import (
    ClipboardContent,
    FileContent,
    ImageContent,
    MimeTypes,
    TextContent,
)
from models.entry import ClipboardEntry, FileOperation, ItemType
from services.acquirer import ContentAcquirer
from services.classifier import Classifier, LanguageDetector
from services.dedup import ClipboardStateTracker, md5_hexdigest
from services.keyboard import FocusQuery, InputPurpose, Keyboard, WindowFocusQuery
from services.settings import Settings
from utils.file_manager import ImageStore, guess_mimetype, uri_to_path
from utils.highlight import PygmentsDetector
from utils.timer import ScheduledTask

logger = logging.getLogger(__name__)

TEXT_ITEM_TYPES = {
    ItemType.TEXT,
    ItemType.CODE,
    ItemType.LINK,
    ItemType.CHARACTER,
    ItemType.COLOR,
}


class HistoryStore(Protocol):
    async def insert(
        self,
        type: ItemType,
        content: str,
        metadata: Optional[Dict[str, Any]],
    ) -> Optional[ClipboardEntry]: ...


def _as_file_uri(path: str) -> str:
    if "://" in path or not path.startswith("/"):
        return path
    return Path(path).as_uri()


class ClipboardManager:

    def __init__(
        self,
        backend: ClipboardBackend,
        store: HistoryStore,
        settings: Settings,
        *,
        keyboard: Optional[Keyboard] = None,
        focus: Optional[FocusQuery] = None,
        image_store: Optional[ImageStore] = None,
        detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.backend = backend
        self.store = store
        self.settings = settings
        self.keyboard = keyboard or Keyboard()
        self.focus = focus or WindowFocusQuery()
        self.image_store = image_store or ImageStore(
            Path(settings.get_string("images-dir")).expanduser())

        self.tracker = ClipboardStateTracker()
        self.acquirer = ContentAcquirer(backend)
        self.classifier = Classifier(settings, self.image_store, detector)

        self._paste_task = ScheduledTask()
        self._listeners: Dict[str, List[Callable[..., None]]] = {
            "entry": [],
            "text": [],
            "image": [],
        }
        self._tasks: Set[asyncio.Task] = set()
        self._alive = True
        self._subscription: Optional[Subscription] = backend.connect_owner_changed(
            self._on_owner_changed)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def alive(self) -> bool:
        return self._alive

    @property
    def paste_pending(self) -> bool:
        return self._paste_task.pending

    async def load_language_detector(self) -> None:
        """Load the code detector; until then code items are stored as text."""
        try:
            self.classifier.detector = await asyncio.to_thread(PygmentsDetector.load)
        except Exception:
            logger.exception("Failed to load language detector")
            self.classifier.detector = None

    def destroy(self) -> None:
        self._alive = False
        self._paste_task.cancel()
        if self._subscription is not None:
            self._subscription.disconnect()
            self._subscription = None
        for listeners in self._listeners.values():
            listeners.clear()
        self.keyboard.destroy()

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------
    def on_entry(self, callback: Callable[[ClipboardEntry], None]) -> Subscription:
        return self._connect("entry", callback)

    def on_text(self, callback: Callable[[str], None]) -> Subscription:
        return self._connect("text", callback)

    def on_image(self, callback: Callable[[bytes, int, int], None]) -> Subscription:
        return self._connect("image", callback)

    def _connect(self, signal: str, callback: Callable[..., None]) -> Subscription:
        listeners = self._listeners[signal]
        listeners.append(callback)

        def _disconnect() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return Subscription(_disconnect)

    def _emit(self, signal: str, *args: Any) -> None:
        if not self._alive:
            return
        for callback in list(self._listeners[signal]):
            try:
                callback(*args)
            except Exception:
                logger.exception(f"{signal} callback raised")

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------
    def _on_owner_changed(self, selection: SelectionType) -> None:
        if not self._alive or selection != SelectionType.CLIPBOARD:
            return
        task = asyncio.ensure_future(self.owner_changed(selection))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def owner_changed(self, selection: SelectionType) -> Optional[ClipboardEntry]:
        try:
            if selection != SelectionType.CLIPBOARD:
                return None

            content = await self.acquirer.acquire(selection)
            if content is None or not self._alive:
                return None

            # Committed before the next await so an overlapping event sees it
            if not self.tracker.should_ingest(content):
                return None

            # Checked after the commit so content copied while incognito
            # is never saved once incognito mode is left
            if not await self._should_save():
                return None

            result = await self.classifier.classify(content)
            if result is None or not self._alive:
                return None
        except Exception:
            logger.exception("Failed to capture clipboard")
            return None

        try:
            entry = await self.store.insert(result.type, result.content, result.metadata)
        except Exception as e:
            logger.error(f"Failed to store clipboard entry: {e}")
            return None

        if entry is not None:
            self._emit("entry", entry)
        return entry

    async def _should_save(self) -> bool:
        exclusions = self.settings.get_strv("wmclass-exclusions")
        if exclusions:
            wm_class = await asyncio.to_thread(self.focus.focused_wm_class)
            if wm_class and wm_class in exclusions:
                return False

        return not self.settings.get_boolean("incognito")

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------
    async def copy_content(self, content: ClipboardContent) -> bool:
        if not self.tracker.record(content):
            return False

        if isinstance(content, TextContent):
            ok = await self.backend.set_text(SelectionType.CLIPBOARD, content.text)
            if self.settings.get_boolean("sync-primary"):
                await self.backend.set_text(SelectionType.PRIMARY, content.text)
            return ok

        if isinstance(content, ImageContent):
            return await self.backend.set_content(
                SelectionType.CLIPBOARD, content.mimetype, content.data)

        if isinstance(content, FileContent):
            lines = [content.operation.value, *(_as_file_uri(p) for p in content.paths)]
            return await self.backend.set_content(
                SelectionType.CLIPBOARD, MimeTypes.FILE[0], "\n".join(lines).encode("utf-8"))

        raise TypeError(f"Unsupported clipboard content: {type(content).__name__}")

    async def paste_content(self, content: ClipboardContent) -> bool:
        if not await self.copy_content(content):
            return False

        if not self.settings.get_boolean("paste-on-copy"):
            return True

        delay = self.settings.get_int("paste-delay") / 1000
        self._paste_task.schedule(delay, self._paste_now)
        return True

    def _paste_now(self) -> None:
        task = asyncio.ensure_future(self._inject_paste())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _inject_paste(self) -> None:
        try:
            purpose = await asyncio.to_thread(self.focus.input_purpose)
        except Exception:
            logger.exception("Failed to query input purpose")
            purpose = InputPurpose.NORMAL

        if not self._alive:
            return
        try:
            self.keyboard.paste_sequence(purpose == InputPurpose.TERMINAL)
        except Exception:
            logger.exception("Failed to send paste keystrokes")

    async def copy_text(self, text: str) -> bool:
        ok = await self.copy_content(TextContent(text=text))
        self._emit("text", text)
        return ok

    async def paste_text(self, text: str) -> bool:
        return await self.paste_content(TextContent(text=text))

    async def copy_png(self, data: bytes, width: int, height: int) -> bool:
        checksum = md5_hexdigest(data)
        if not checksum:
            return False
        ok = await self.copy_content(
            ImageContent(mimetype="image/png", data=data, checksum=checksum))
        self._emit("image", data, width, height)
        return ok

    async def paste_entry(self, entry: ClipboardEntry) -> bool:
        if self.settings.get_boolean("update-date-on-copy"):
            entry.datetime = datetime.datetime.now(datetime.timezone.utc)

        if entry.type in TEXT_ITEM_TYPES:
            return await self.paste_content(TextContent(text=entry.content))

        if entry.type == ItemType.IMAGE:
            try:
                data = await asyncio.to_thread(self.image_store.load, entry.content)
            except OSError as e:
                logger.error(f"Failed to load image {entry.content}: {e}")
                return False

            mimetype = guess_mimetype(uri_to_path(entry.content), data)
            if not mimetype:
                logger.debug(f"Unknown image type for {entry.content}")
                return False

            checksum = md5_hexdigest(data) or ""
            return await self.paste_content(
                ImageContent(mimetype=mimetype, data=data, checksum=checksum))

        if entry.type in {ItemType.FILE, ItemType.FILES}:
            paths = tuple(entry.content.split("\n"))
            return await self.paste_content(
                FileContent(paths=paths, operation=FileOperation.COPY))

        return False
