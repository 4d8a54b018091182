from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional, TypeVar

from ..config import SETTINGS_RELATIVE_PATH
from ..errors import AddonManagerError, NoWorkspaceError

logger = logging.getLogger("addon_manager.settings")

T = TypeVar("T")

SETTINGS_LOCK = threading.Lock()


def strip_jsonc(text: str) -> str:
    """
    Turn editor-style JSON (JSONC) into plain JSON.

    Removes `//` and `/* */` comments and commas directly before `}` or `]`.
    String contents are left untouched.
    """
    out: list[str] = []
    i, n = 0, len(text)
    pending_comma: Optional[int] = None

    while i < n:
        ch = text[i]

        if ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            out.append(text[i : j + 1])
            pending_comma = None
            i = j + 1
            continue

        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue

        if text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
            continue

        if ch in "}]" and pending_comma is not None:
            out[pending_comma] = ""
        if ch == ",":
            pending_comma = len(out)
        elif not ch.isspace():
            pending_comma = None

        out.append(ch)
        i += 1

    return "".join(out)


class SettingsStore:
    """
    Handles reading/writing `<workspace>/.vscode/settings.json` atomically.

    Keys are stored flat, the way the editor writes them: section "Lua" and
    key "workspace.library" live under "Lua.workspace.library".
    """

    def __init__(self, workspace: Optional[Path] = None):
        self.workspace = workspace

    @property
    def workspace_open(self) -> bool:
        return self.workspace is not None

    @property
    def settings_path(self) -> Path:
        if self.workspace is None:
            raise NoWorkspaceError()
        return self.workspace / SETTINGS_RELATIVE_PATH

    @staticmethod
    def _full_key(key: str, section: str) -> str:
        return f"{section}.{key}" if section else key

    def _load(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            raw = json.loads(strip_jsonc(path.read_text(encoding="utf-8")))
        except Exception as e:
            logger.error(f"Failed to load workspace settings from {path}: {e}")
            raise AddonManagerError(f"Failed to load workspace settings: {e}")
        if not isinstance(raw, dict):
            raise AddonManagerError(f"Workspace settings must be a JSON object: {path}")
        return raw

    def get_setting(self, key: str, section: str, default: T) -> T:
        """
        Read one setting. Raises NoWorkspaceError if no workspace is open.
        """
        path = self.settings_path
        with SETTINGS_LOCK:
            data = self._load(path)
        value = data.get(self._full_key(key, section), default)
        logger.debug(f"Read setting {self._full_key(key, section)} from {path}")
        return value

    def set_setting(self, key: str, section: str, value: Any) -> None:
        path = self.settings_path
        full_key = self._full_key(key, section)
        with SETTINGS_LOCK:
            data = self._load(path)
            data[full_key] = value
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(data, indent=4) + "\n", encoding="utf-8")
            tmp.replace(path)
        logger.debug(f"Saved setting {full_key} to {path}")
