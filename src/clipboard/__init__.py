from clipboard.base import ClipboardBackend, SelectionType, Subscription
from clipboard.factory import get_clipboard_backend, get_clipboard_class

__all__ = [
    'ClipboardBackend',
    'SelectionType',
    'Subscription',
    'get_clipboard_backend',
    'get_clipboard_class',
]
