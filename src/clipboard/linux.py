import asyncio
import hashlib
import logging
import os
import shutil
from typing import List, Optional

from clipboard.base import ClipboardBackend, SelectionType

logger = logging.getLogger(__name__)


def detect_display_server() -> str:
    if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-paste") and shutil.which("wl-copy"):
        return "wayland"
    if os.environ.get("DISPLAY") and shutil.which("xclip"):
        return "x11"
    return "unknown"


class LinuxClipboard(ClipboardBackend):
    """Clipboard access through wl-clipboard on Wayland or xclip on X11."""

    def __init__(
        self,
        display_server: Optional[str] = None,
        poll_interval: float = 0.25,
        timeout: float = 1.5,
    ):
        super().__init__()
        self.display_server = display_server or detect_display_server()
        if self.display_server not in {"wayland", "x11"}:
            raise RuntimeError(
                "No clipboard tool found. Install wl-clipboard or xclip.")

        self.poll_interval = poll_interval
        self.timeout = timeout
        self._watch_tasks: List[asyncio.Task] = []
        self._watch_processes: List[asyncio.subprocess.Process] = []

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def _list_types_command(self, selection: SelectionType) -> List[str]:
        if self.display_server == "wayland":
            return ["wl-paste", *self._wl_flags(selection), "--list-types"]
        return ["xclip", "-selection", selection.value, "-t", "TARGETS", "-o"]

    def _read_command(self, selection: SelectionType, target: Optional[str]) -> List[str]:
        if self.display_server == "wayland":
            command = ["wl-paste", *self._wl_flags(selection)]
            if target:
                command += ["--type", target]
            if target is None or target.lower().startswith("text/"):
                command.append("--no-newline")
            return command
        command = ["xclip", "-selection", selection.value]
        if target:
            command += ["-t", target]
        return command + ["-o"]

    def _write_command(self, selection: SelectionType, target: Optional[str]) -> List[str]:
        if self.display_server == "wayland":
            command = ["wl-copy", *self._wl_flags(selection)]
            if target:
                command += ["--type", target]
            return command
        command = ["xclip", "-selection", selection.value]
        if target:
            command += ["-t", target]
        return command

    @staticmethod
    def _wl_flags(selection: SelectionType) -> List[str]:
        return ["--primary"] if selection == SelectionType.PRIMARY else []

    async def _run_command(
        self,
        command: List[str],
        input: Optional[bytes] = None,
        capture: bool = True,
    ) -> Optional[bytes]:
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE if input is not None else asyncio.subprocess.DEVNULL,
                # wl-copy and xclip fork a server that keeps inherited pipes open
                stdout=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug(f"Could not run {command[0]}: {e}")
            return None

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(input), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.debug(f"{command[0]} timed out")
            return None

        if process.returncode != 0:
            return None
        return stdout if capture else b""

    # ------------------------------------------------------------------
    # ClipboardBackend
    # ------------------------------------------------------------------
    async def get_mimetypes(self, selection: SelectionType) -> List[str]:
        data = await self._run_command(self._list_types_command(selection))
        return self._parse_type_list(data)

    async def get_content(self, selection: SelectionType, mimetype: str) -> bytes:
        return await self._run_command(self._read_command(selection, mimetype)) or b""

    async def get_text(self, selection: SelectionType) -> Optional[str]:
        data = await self._run_command(self._read_command(selection, None))
        if data is None:
            return None
        return data.decode("utf-8", errors="ignore")

    async def set_text(self, selection: SelectionType, text: str) -> bool:
        result = await self._run_command(
            self._write_command(selection, None),
            input=text.encode("utf-8"),
            capture=False,
        )
        return result is not None

    async def set_content(self, selection: SelectionType, mimetype: str, data: bytes) -> bool:
        result = await self._run_command(
            self._write_command(selection, mimetype),
            input=data,
            capture=False,
        )
        return result is not None

    # ------------------------------------------------------------------
    # Ownership changes
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._watch_tasks:
            return

        for selection in SelectionType:
            if self.display_server == "wayland":
                coro = self._watch_wayland(selection)
            else:
                coro = self._poll_x11(selection)
            self._watch_tasks.append(asyncio.create_task(
                coro, name=f"clipvault-watch-{selection.value}"))

    async def _watch_wayland(self, selection: SelectionType) -> None:
        command = ["wl-paste", *self._wl_flags(selection), "--watch", "echo", "changed"]
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._watch_processes.append(process)

        assert process.stdout is not None
        while True:
            line = await process.stdout.readline()
            if not line:
                logger.warning(f"wl-paste watcher for {selection.value} exited")
                return
            self.emit_owner_changed(selection)

    async def _poll_x11(self, selection: SelectionType) -> None:
        last_signature = await self._x11_signature(selection)
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                signature = await self._x11_signature(selection)
            except Exception:
                logger.exception("Clipboard poll failed")
                continue

            if signature != last_signature:
                last_signature = signature
                if signature is not None:
                    self.emit_owner_changed(selection)

    async def _x11_signature(self, selection: SelectionType) -> Optional[str]:
        targets = await self._run_command(self._list_types_command(selection))
        if not targets:
            return None

        # TIMESTAMP changes whenever a new owner takes the selection
        stamp = await self._run_command(self._read_command(selection, "TIMESTAMP"))
        if not stamp:
            stamp = await self._run_command(self._read_command(selection, None)) or b""
        return hashlib.md5(targets + b"\0" + stamp).hexdigest()

    async def close(self) -> None:
        for task in self._watch_tasks:
            task.cancel()
        for task in self._watch_tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("Clipboard watcher failed")
        self._watch_tasks.clear()

        for process in self._watch_processes:
            if process.returncode is None:
                process.terminate()
                await process.wait()
        self._watch_processes.clear()

        await super().close()

    @staticmethod
    def _parse_type_list(data: Optional[bytes]) -> List[str]:
        if not data:
            return []
        text = data.decode("utf-8", errors="ignore")
        return [line.strip() for line in text.splitlines() if line.strip()]
