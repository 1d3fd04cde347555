from pathlib import Path
import sys
from typing import Dict, List, Optional

import pytest

# ensure src is importable
REPO_ROOT = Path(__file__).resolve().parent.parent
SRC = REPO_ROOT / "src"
sys.path.insert(0, str(SRC))

from clipboard.base import ClipboardBackend, SelectionType  # noqa: E402
from models.entry import ClipboardEntry  # noqa: E402
from services.keyboard import InputPurpose  # noqa: E402
from services.settings import Settings  # noqa: E402
from utils.highlight import HighlightResult  # noqa: E402


class FakeClipboard(ClipboardBackend):
    """In-memory selections keyed by MIME type."""

    def __init__(self):
        super().__init__()
        self.selections: Dict[SelectionType, Dict[str, bytes]] = {
            SelectionType.CLIPBOARD: {},
            SelectionType.PRIMARY: {},
        }
        self.writes: List[tuple] = []

    def offer(self, data: Dict[str, bytes], selection=SelectionType.CLIPBOARD):
        self.selections[selection] = dict(data)

    def offer_text(self, text: str, selection=SelectionType.CLIPBOARD):
        self.offer({"text/plain": text.encode("utf-8")}, selection)

    async def get_mimetypes(self, selection):
        return list(self.selections[selection])

    async def get_content(self, selection, mimetype):
        return self.selections[selection].get(mimetype, b"")

    async def get_text(self, selection):
        data = self.selections[selection].get("text/plain")
        return data.decode("utf-8") if data is not None else None

    async def set_text(self, selection, text):
        self.writes.append((selection, "text/plain", text.encode("utf-8")))
        self.offer_text(text, selection)
        return True

    async def set_content(self, selection, mimetype, data):
        self.writes.append((selection, mimetype, data))
        self.offer({mimetype: data}, selection)
        return True


class FakeStore:

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.entries: List[ClipboardEntry] = []

    async def insert(self, type, content, metadata):
        if self.fail:
            raise ConnectionError("store offline")
        entry = ClipboardEntry(
            id=f"i_{len(self.entries)}", type=type, content=content, metadata=metadata)
        self.entries.append(entry)
        return entry


class FakeInput:

    def __init__(self):
        self.events: List[tuple] = []

    def press(self, key):
        self.events.append(("press", key))

    def release(self, key):
        self.events.append(("release", key))


class FakeFocus:

    def __init__(self, wm_class: Optional[str] = None, purpose=InputPurpose.NORMAL):
        self.wm_class = wm_class
        self.purpose = purpose

    def focused_wm_class(self):
        return self.wm_class

    def input_purpose(self):
        return self.purpose


class FakeDetector:

    def __init__(self, language: Optional[str] = None, relevance: float = 0, name=None):
        self.language = language
        self.relevance = relevance
        self.name = name
        self.samples: List[str] = []

    def highlight_auto(self, sample):
        self.samples.append(sample)
        if self.language is None:
            return None
        return HighlightResult(language=self.language, relevance=self.relevance)

    def get_language_name(self, language):
        return self.name


@pytest.fixture
def settings():
    return Settings({"paste-delay": 10}, use_env=False)


@pytest.fixture
def backend():
    return FakeClipboard()


@pytest.fixture
def store():
    return FakeStore()
