"""Service layer for ClipVault."""

from .clipboard_service import ClipboardManager
from .settings import Settings

__all__ = ["ClipboardManager", "Settings"]
