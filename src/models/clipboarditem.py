from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Tuple, Union

from models.entry import FileOperation


class ContentType(Enum):
    TEXT = 0
    IMAGE = 1
    FILE = 2


class MimeTypes:
    TEXT = ("text/plain", "text/plain;charset=utf-8", "STRING", "UTF8_STRING")
    IMAGE = ("image/png", "image/jxl", "image/webp", "image/avif", "image/jpeg")
    FILE = ("x-special/gnome-copied-files", "text/uri-list")
    SENSITIVE = ("x-kde-passwordManagerHint",)


@dataclass(frozen=True)
class TextContent:
    text: str
    type: ClassVar[ContentType] = ContentType.TEXT


@dataclass(frozen=True)
class ImageContent:
    """Raw image bytes. ``checksum`` may be empty to skip the dedup check."""
    mimetype: str
    data: bytes = field(repr=False)
    checksum: str
    type: ClassVar[ContentType] = ContentType.IMAGE


@dataclass(frozen=True)
class FileContent:
    paths: Tuple[str, ...]
    operation: FileOperation = FileOperation.COPY
    type: ClassVar[ContentType] = ContentType.FILE


ClipboardContent = Union[TextContent, ImageContent, FileContent]
