"""Synthetic paste keystrokes and focus queries."""

import logging
import shutil
import subprocess
from enum import Enum
from typing import List, Optional, Protocol, Sequence

import keyboard

logger = logging.getLogger(__name__)

KEY_CONTROL = "ctrl"
KEY_SHIFT = "shift"
KEY_V = "v"

TERMINAL_WM_CLASSES = frozenset({
    "alacritty",
    "foot",
    "gnome-terminal",
    "gnome-terminal-server",
    "kgx",
    "kitty",
    "konsole",
    "org.gnome.console",
    "org.gnome.ptyxis",
    "terminator",
    "tilix",
    "urxvt",
    "wezterm",
    "xfce4-terminal",
    "xterm",
})


class InputPurpose(Enum):
    NORMAL = "normal"
    TERMINAL = "terminal"


class InputBackend(Protocol):
    def press(self, key: str) -> None: ...

    def release(self, key: str) -> None: ...


class FocusQuery(Protocol):
    def focused_wm_class(self) -> Optional[str]: ...

    def input_purpose(self) -> InputPurpose: ...


class KeyboardInputBackend:
    """Sends key events through the ``keyboard`` library."""

    def press(self, key: str) -> None:
        keyboard.press(key)

    def release(self, key: str) -> None:
        keyboard.release(key)


class WindowFocusQuery:
    """Looks up the focused window's class with xdotool.

    The input purpose is inferred from the window class since there is no
    portable way to read it outside the compositor.
    """

    def __init__(self, terminal_classes: Sequence[str] = tuple(TERMINAL_WM_CLASSES)):
        self.terminal_classes = {name.lower() for name in terminal_classes}

    def focused_wm_class(self) -> Optional[str]:
        if not shutil.which("xdotool"):
            return None
        try:
            result = subprocess.run(
                ["xdotool", "getactivewindow", "getwindowclassname"],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=0.5,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError):
            return None
        wm_class = result.stdout.decode("utf-8", errors="ignore").strip()
        return wm_class or None

    def input_purpose(self) -> InputPurpose:
        wm_class = self.focused_wm_class()
        if wm_class and wm_class.lower() in self.terminal_classes:
            return InputPurpose.TERMINAL
        return InputPurpose.NORMAL


class Keyboard:

    def __init__(self, backend: Optional[InputBackend] = None):
        self.backend = backend or KeyboardInputBackend()
        self._pressed: List[str] = []

    def press(self, key: str) -> None:
        self.backend.press(key)
        self._pressed.append(key)

    def release(self, key: str) -> None:
        self.backend.release(key)
        if key in self._pressed:
            self._pressed.remove(key)

    def paste_sequence(self, is_terminal: bool) -> None:
        # Terminals bind paste to Ctrl+Shift+V
        if is_terminal:
            self.chord([KEY_CONTROL, KEY_SHIFT, KEY_V])
        else:
            self.chord([KEY_CONTROL, KEY_V])

    def chord(self, keys: Sequence[str]) -> None:
        """Press ``keys`` in order and release them in reverse.

        Keys already pressed are released even when a later press fails.
        """
        if not keys:
            return
        self.press(keys[0])
        try:
            self.chord(keys[1:])
        finally:
            self.release(keys[0])

    def destroy(self) -> None:
        """Release anything still held down."""
        for key in reversed(self._pressed):
            try:
                self.backend.release(key)
            except Exception:
                logger.exception(f"Failed to release {key}")
        self._pressed.clear()
