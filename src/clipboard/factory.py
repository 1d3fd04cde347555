import platform
from typing import Type

from clipboard.base import ClipboardBackend


def get_clipboard_class() -> Type[ClipboardBackend]:
    system = platform.system()

    if system == "Linux":
        from clipboard.linux import LinuxClipboard
        return LinuxClipboard
    else:
        raise NotImplementedError(f"Platform '{system}' is not supported")


def get_clipboard_backend(**kwargs) -> ClipboardBackend:
    clipboard_class = get_clipboard_class()
    return clipboard_class(**kwargs)
