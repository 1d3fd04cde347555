import hashlib
import logging
from typing import Optional, Tuple
from urllib.parse import unquote

from models.clipboarditem import (
    ClipboardContent,
    ContentType,
    FileContent,
    ImageContent,
    TextContent,
)

logger = logging.getLogger(__name__)

FILE_SCHEME = "file://"


def md5_hexdigest(data: bytes) -> Optional[str]:
    try:
        return hashlib.md5(data).hexdigest()
    except ValueError:
        # md5 is unavailable when the interpreter runs under a FIPS policy
        return None


def _strip_file_scheme(path: str) -> str:
    path = unquote(path)
    if path.startswith(FILE_SCHEME):
        return path[len(FILE_SCHEME):]
    return path


def fingerprint(content: ClipboardContent) -> Optional[str]:
    """Return the content digest used for deduplication.

    Images carry a checksum computed at acquisition time; it may be empty
    when the caller opted out of the dedup check. File lists hash their
    decoded paths only, so a cut and a copy of the same files collide.
    """
    if isinstance(content, TextContent):
        return md5_hexdigest(content.text.encode("utf-8"))
    if isinstance(content, ImageContent):
        return content.checksum
    if isinstance(content, FileContent):
        joined = "\n".join(_strip_file_scheme(p) for p in content.paths)
        return md5_hexdigest(joined.encode("utf-8"))
    raise TypeError(f"Unsupported clipboard content: {type(content).__name__}")


class ClipboardStateTracker:
    """Remembers what the system clipboard is known to hold."""

    def __init__(self) -> None:
        self._previous: Optional[Tuple[ContentType, str]] = None

    @property
    def previous(self) -> Optional[Tuple[ContentType, str]]:
        return self._previous

    def should_ingest(self, content: ClipboardContent) -> bool:
        checksum = fingerprint(content)
        if not checksum:
            return False

        if self._previous is not None:
            kind, previous_checksum = self._previous
            if kind == content.type and previous_checksum == checksum:
                logger.debug("Ignoring duplicate clipboard content (%s)", kind.name)
                return False

            # The owner of a copied file went away (e.g. the file manager
            # closed) and the same paths are now offered as plain text.
            if (
                kind == ContentType.FILE
                and content.type == ContentType.TEXT
                and previous_checksum == checksum
            ):
                logger.debug("Ignoring file selection re-offered as text")
                return False

        self._previous = (content.type, checksum)
        return True

    def record(self, content: ClipboardContent) -> bool:
        checksum = fingerprint(content)
        if checksum is None:
            return False
        if checksum:
            self._previous = (content.type, checksum)
        return True
