from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List

from ..config import ADDON_NAMESPACE, LIBRARY_SETTING_NAME, LIBRARY_SETTING_SECTION
from .settings_store import SettingsStore

logger = logging.getLogger("addon_manager.library")

_ADDONS_SEGMENT = f"{re.escape(ADDON_NAMESPACE)}/addons"
_ENTRY_NAME_RE = re.compile(rf"(?:^|/){_ADDONS_SEGMENT}/([^/]+)(?:/|$)")


@dataclass(frozen=True)
class LibraryEntry:
    index: int
    path: str


def _normalize(entry: str) -> str:
    return entry.replace("\\", "/")


def addon_pattern(name: str) -> re.Pattern[str]:
    """
    Identity pattern for an addon inside a library path.

    Anchored on separators: "foo" matches ".../sumneko.lua/addons/foo" and
    ".../sumneko.lua/addons/foo/module" but never ".../addons/foobar".
    """
    return re.compile(rf"(?:^|/){_ADDONS_SEGMENT}/{re.escape(name)}(?:/|$)")


def find_entry(entries: Iterable[object], name: str) -> int:
    """Index of the first entry belonging to `name`, or -1."""
    pattern = addon_pattern(name)
    for i, entry in enumerate(entries):
        if isinstance(entry, str) and pattern.search(_normalize(entry)):
            return i
    return -1


def index_library(entries: Iterable[object]) -> Dict[str, LibraryEntry]:
    """Map addon name -> its (first) entry in the library list."""
    index: Dict[str, LibraryEntry] = {}
    for i, entry in enumerate(entries):
        if not isinstance(entry, str):
            continue
        match = _ENTRY_NAME_RE.search(_normalize(entry))
        if match is None:
            continue
        index.setdefault(match.group(1), LibraryEntry(index=i, path=entry))
    return index


def encode_location(location: Path) -> str:
    """Library entries are stored without the leading path separator."""
    path = location.as_posix()
    return path[1:] if path.startswith("/") else path


class EnabledLibrary:
    """
    The ordered `Lua.workspace.library` list.

    All mutations run read-modify-write under one lock, so two enable/disable
    requests in this process can never overwrite each other's result.
    """

    def __init__(self, store: SettingsStore):
        self.store = store
        self._lock = asyncio.Lock()

    async def read(self) -> List[str]:
        """Raises NoWorkspaceError if no workspace is open."""
        value = await asyncio.to_thread(
            self.store.get_setting, LIBRARY_SETTING_NAME, LIBRARY_SETTING_SECTION, []
        )
        if not isinstance(value, list):
            logger.warning("Library setting is not a list (%s); treating it as empty", type(value).__name__)
            return []
        return list(value)

    async def _write(self, entries: List[str]) -> None:
        await asyncio.to_thread(
            self.store.set_setting, LIBRARY_SETTING_NAME, LIBRARY_SETTING_SECTION, entries
        )

    async def set_enabled(self, name: str, location: Path, state: bool) -> bool:
        """
        Add or remove the entry for `name`. Returns whether the list changed.
        """
        async with self._lock:
            entries = await self.read()
            index = find_entry(entries, name)

            if state:
                if index > -1:
                    logger.warning(f"{name} is already enabled!")
                    return False
                entries.append(encode_location(location))
            else:
                if index == -1:
                    logger.warning(f"{name} is already disabled!")
                    return False
                del entries[index]

            await self._write(entries)
            return True
