from dataclasses import dataclass
import datetime as dt
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ItemType(str, Enum):
    TEXT = "text"
    CODE = "code"
    IMAGE = "image"
    FILE = "file"
    FILES = "files"
    LINK = "link"
    CHARACTER = "character"
    COLOR = "color"


class FileOperation(str, Enum):
    COPY = "copy"
    CUT = "cut"


@dataclass(frozen=True)
class ClassifiedEntry:
    """Result of classifying one capture, handed to the history store."""
    type: ItemType
    content: str
    metadata: Optional[Dict[str, Any]] = None


class ClipboardEntry(BaseModel):  # owned by the history store
    id: str
    type: ItemType
    content: str
    metadata: Optional[Dict[str, Any]] = None
    datetime: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc))
