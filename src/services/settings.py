from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv

ENV_PREFIX = "CLIPVAULT_"

DEFAULTS: Dict[str, Any] = {
    "sync-primary": False,
    "paste-on-copy": True,
    "update-date-on-copy": True,
    "incognito": False,
    "wmclass-exclusions": [],
    "character-item.max-characters": 1,
    "images-dir": str(Path.home() / ".clipvault" / "images"),
    "paste-delay": 250,
    "poll-interval": 250,
}


def load_env_file(env_path: Optional[Path] = None) -> None:
    path = env_path or Path(__file__).resolve().parents[2] / ".env"
    if path.exists():
        load_dotenv(dotenv_path=path, override=False)


def env_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace("-", "_").replace(".", "_")


def _to_bool(value: str, default: bool) -> bool:
    value = value.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off", ""}:
        return False
    return default


class Settings:
    """Read-only settings lookups.

    Every lookup is resolved when it happens: in-memory overrides first, then
    the environment, then ``DEFAULTS``.
    """

    def __init__(
        self,
        values: Optional[Mapping[str, Any]] = None,
        *,
        env_path: Optional[Path] = None,
        use_env: bool = True,
    ) -> None:
        self._values: Dict[str, Any] = dict(values or {})
        self._use_env = use_env
        if use_env:
            load_env_file(env_path)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def _lookup(self, key: str) -> Any:
        if key in self._values:
            return self._values[key]
        if self._use_env:
            raw = os.getenv(env_name(key))
            if raw is not None:
                return raw
        if key not in DEFAULTS:
            raise KeyError(f"Unknown setting: {key}")
        return DEFAULTS[key]

    def get_boolean(self, key: str) -> bool:
        value = self._lookup(key)
        if isinstance(value, str):
            return _to_bool(value, bool(DEFAULTS.get(key, False)))
        return bool(value)

    def get_int(self, key: str) -> int:
        value = self._lookup(key)
        try:
            return int(value)
        except (TypeError, ValueError):
            return int(DEFAULTS[key])

    def get_string(self, key: str) -> str:
        return str(self._lookup(key))

    def get_strv(self, key: str) -> List[str]:
        value = self._lookup(key)
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return [str(item) for item in value]
