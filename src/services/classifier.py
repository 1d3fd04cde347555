"""Turns acquired clipboard content into typed history entries.

Text goes through an ordered set of checks, first match wins:

1. link       ``http...`` that parses as an absolute URI
2. character  no more than ``character-item.max-characters`` graphemes
3. color      anything the color parser accepts
4. code       the language detector is confident enough
5. text       everything else

Images are written to a content-addressed directory and referenced by URI.
File lists become a single ``file`` or a newline-joined ``files`` entry.
"""

import asyncio
import logging
import string
from typing import Optional, Protocol
from urllib.parse import urlparse

import regex

from models.clipboarditem import ClipboardContent, FileContent, ImageContent, TextContent
from models.entry import ClassifiedEntry, ItemType
from services.settings import Settings
from utils.color import parse_color
from utils.file_manager import ImageStore
from utils.highlight import HighlightResult

logger = logging.getLogger(__name__)

CODE_SAMPLE_LENGTH = 10000
CODE_MIN_RELEVANCE = 3

GRAPHEME = regex.compile(r"\X")
_URI_FORBIDDEN = set(string.whitespace) | set('"<>\\^`{|}')
_BAD_ESCAPE = regex.compile(r"%(?![0-9A-Fa-f]{2})")


class LanguageDetector(Protocol):
    def highlight_auto(self, sample: str) -> Optional[HighlightResult]: ...

    def get_language_name(self, language: str) -> Optional[str]: ...


def is_link(text: str) -> bool:
    """True for an absolute URI starting with ``http``.

    Follows RFC 3986 syntax, so ``http:foo`` counts and a host is not
    required. Whitespace, control characters and characters that must
    always be escaped are rejected, as are malformed ``%`` escapes.
    """
    if not text.startswith("http"):
        return False
    if any(ch in _URI_FORBIDDEN or ord(ch) < 0x20 for ch in text):
        return False
    if _BAD_ESCAPE.search(text):
        return False
    try:
        parsed = urlparse(text)
        # raises ValueError on a malformed port
        parsed.port
    except ValueError:
        return False
    return bool(parsed.scheme)


def has_at_most_graphemes(text: str, limit: int) -> bool:
    for count, _ in enumerate(GRAPHEME.finditer(text), start=1):
        if count > limit:
            return False
    return True


def normalized_relevance(relevance: float, sample_length: int) -> float:
    return relevance / max(1, sample_length / 100)


def language_display_name(language: str, name: Optional[str]) -> str:
    capitalized = language[:1].upper() + language[1:]
    if name is None or len(capitalized) >= len(name) - 3:
        return capitalized
    return name


class Classifier:

    def __init__(
        self,
        settings: Settings,
        image_store: ImageStore,
        detector: Optional[LanguageDetector] = None,
    ):
        self.settings = settings
        self.image_store = image_store
        self.detector = detector

    async def classify(self, content: ClipboardContent) -> Optional[ClassifiedEntry]:
        if isinstance(content, TextContent):
            return await self.classify_text(content.text)
        if isinstance(content, ImageContent):
            return await self.classify_image(content)
        if isinstance(content, FileContent):
            return self.classify_files(content)
        raise TypeError(f"Unsupported clipboard content: {type(content).__name__}")

    async def classify_text(self, text: str) -> ClassifiedEntry:
        trimmed = text.strip()

        if is_link(trimmed):
            return ClassifiedEntry(ItemType.LINK, text)

        max_characters = self.settings.get_int("character-item.max-characters")
        if has_at_most_graphemes(trimmed, max_characters):
            return ClassifiedEntry(ItemType.CHARACTER, text)

        if parse_color(trimmed):
            return ClassifiedEntry(ItemType.COLOR, text)

        detector = self.detector
        if detector is not None:
            metadata = await asyncio.to_thread(self._detect_language, detector, trimmed)
            if metadata is not None:
                return ClassifiedEntry(ItemType.CODE, text, metadata)

        return ClassifiedEntry(ItemType.TEXT, text)

    @staticmethod
    def _detect_language(detector: LanguageDetector, trimmed: str) -> Optional[dict]:
        sample = trimmed[:CODE_SAMPLE_LENGTH]
        result = detector.highlight_auto(sample)
        if result is None or not result.language:
            return None
        if normalized_relevance(result.relevance, len(sample)) < CODE_MIN_RELEVANCE:
            return None

        language = result.language
        name = language_display_name(language, detector.get_language_name(language))
        return {"language": {"id": language, "name": name}}

    async def classify_image(self, content: ImageContent) -> Optional[ClassifiedEntry]:
        try:
            path = await asyncio.to_thread(
                self.image_store.save, content.checksum, content.data)
        except OSError as e:
            logger.error(f"Failed to save image {content.checksum}: {e}")
            return None
        return ClassifiedEntry(ItemType.IMAGE, self.image_store.get_file_uri(path))

    @staticmethod
    def classify_files(content: FileContent) -> Optional[ClassifiedEntry]:
        if not content.paths:
            return None
        metadata = {"operation": content.operation.value}
        if len(content.paths) == 1:
            return ClassifiedEntry(ItemType.FILE, content.paths[0], metadata)
        return ClassifiedEntry(ItemType.FILES, "\n".join(content.paths), metadata)
