import logging
import mimetypes
from io import BytesIO
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)


def uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(unquote(uri))


def guess_mimetype(path: Union[str, Path], data: bytes) -> Optional[str]:
    """Sniff the image MIME type from the bytes, falling back to the name."""
    try:
        with Image.open(BytesIO(data)) as image:
            mime = Image.MIME.get(image.format or "")
        if mime:
            return mime
    except (UnidentifiedImageError, OSError, ValueError):
        pass

    mime_type, _ = mimetypes.guess_type(str(path))
    return mime_type


class ImageStore:
    """Content-addressed image directory: each file is named by its checksum."""

    def __init__(self, base_dir: Optional[Path] = None):
        if base_dir is None:
            base_dir = Path.home() / ".clipvault" / "images"
        self.base_dir = Path(base_dir)

    def path_for(self, checksum: str) -> Path:
        return self.base_dir / checksum

    def save(self, checksum: str, payload: bytes) -> Path:
        """Write ``payload`` unless a file with the same checksum exists.

        Raises ``OSError`` when the directory or file cannot be written.
        """
        self.base_dir.mkdir(parents=True, exist_ok=True)

        file_path = self.path_for(checksum)
        if file_path.exists():
            return file_path

        partial = file_path.with_name(f".{checksum}.part")
        partial.write_bytes(payload)
        partial.replace(file_path)
        logger.info(f"Saved image to {file_path}")
        return file_path

    def load(self, uri: str) -> bytes:
        return uri_to_path(uri).read_bytes()

    def get_file_uri(self, file_path: Path) -> str:
        return file_path.as_uri()
