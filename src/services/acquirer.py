import logging
from typing import List, Optional

from clipboard.base import ClipboardBackend, SelectionType
from models.clipboarditem import (
    ClipboardContent,
    FileContent,
    ImageContent,
    MimeTypes,
    TextContent,
)
from models.entry import FileOperation
from services.dedup import md5_hexdigest

logger = logging.getLogger(__name__)


def parse_file_list(data: bytes) -> Optional[FileContent]:
    """Parse ``x-special/gnome-copied-files`` or ``text/uri-list`` data."""
    text = data.decode("utf-8", errors="ignore").strip()
    if not text:
        return None

    lines = [line.strip() for line in text.split("\n") if line.strip()]
    operation = FileOperation.COPY
    if lines and lines[0].lower() in {FileOperation.COPY.value, FileOperation.CUT.value}:
        operation = FileOperation(lines[0].lower())
        lines = lines[1:]

    if not lines:
        return None
    return FileContent(paths=tuple(lines), operation=operation)


class ContentAcquirer:
    """Reads the current clipboard in priority order: image, files, text."""

    def __init__(self, backend: ClipboardBackend):
        self.backend = backend

    async def acquire(
        self, selection: SelectionType = SelectionType.CLIPBOARD
    ) -> Optional[ClipboardContent]:
        mimetypes = await self.backend.get_mimetypes(selection)

        if any(mime in mimetypes for mime in MimeTypes.SENSITIVE):
            return None

        image_mimetype = self._first_match(MimeTypes.IMAGE, mimetypes)
        if image_mimetype:
            data = await self.backend.get_content(selection, image_mimetype)
            if not data:
                return None
            checksum = md5_hexdigest(data)
            if not checksum:
                return None
            return ImageContent(mimetype=image_mimetype, data=data, checksum=checksum)

        file_mimetype = self._first_match(MimeTypes.FILE, mimetypes)
        if file_mimetype:
            data = await self.backend.get_content(selection, file_mimetype)
            return parse_file_list(data) if data else None

        if self._first_match(MimeTypes.TEXT, mimetypes):
            text = await self.backend.get_text(selection)
            if text and text.strip():
                return TextContent(text=text)
            return None

        return None

    @staticmethod
    def _first_match(preferred, available: List[str]) -> Optional[str]:
        for mime in preferred:
            if mime in available:
                return mime
        return None
