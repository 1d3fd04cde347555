from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List, Optional
import logging

logger = logging.getLogger(__name__)


class SelectionType(Enum):
    CLIPBOARD = "clipboard"
    PRIMARY = "primary"


class Subscription:
    """Handle returned by ``connect_*`` methods; ``disconnect`` is idempotent."""

    def __init__(self, on_disconnect: Callable[[], None]):
        self._on_disconnect: Optional[Callable[[], None]] = on_disconnect

    @property
    def connected(self) -> bool:
        return self._on_disconnect is not None

    def disconnect(self) -> None:
        callback, self._on_disconnect = self._on_disconnect, None
        if callback is not None:
            callback()


class ClipboardBackend(ABC):

    def __init__(self):
        self._owner_changed_callbacks: List[Callable[[SelectionType], None]] = []

    @abstractmethod
    async def get_mimetypes(self, selection: SelectionType) -> List[str]:
        pass

    @abstractmethod
    async def get_content(self, selection: SelectionType, mimetype: str) -> bytes:
        pass

    @abstractmethod
    async def get_text(self, selection: SelectionType) -> Optional[str]:
        pass

    @abstractmethod
    async def set_text(self, selection: SelectionType, text: str) -> bool:
        pass

    @abstractmethod
    async def set_content(self, selection: SelectionType, mimetype: str, data: bytes) -> bool:
        pass

    def connect_owner_changed(self, callback: Callable[[SelectionType], None]) -> Subscription:
        self._owner_changed_callbacks.append(callback)

        def _disconnect() -> None:
            if callback in self._owner_changed_callbacks:
                self._owner_changed_callbacks.remove(callback)

        return Subscription(_disconnect)

    def emit_owner_changed(self, selection: SelectionType) -> None:
        for callback in list(self._owner_changed_callbacks):
            try:
                callback(selection)
            except Exception:
                logger.exception("Owner-changed callback raised")

    def start(self) -> None:
        """Begin watching for selection ownership changes."""

    async def close(self) -> None:
        self._owner_changed_callbacks.clear()
