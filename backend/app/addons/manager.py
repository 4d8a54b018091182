from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List

from .domain.models import AddonSnapshot
from .errors import ConfigUnreadableError, NoWorkspaceError
from .local_addon import LocalAddon
from .services.filesystem import FilesystemGateway
from .services.library import EnabledLibrary, find_entry, index_library
from .services.registry import RemoteAddonRegistry
from .transport import MessageBus

logger = logging.getLogger("addon_manager.manager")


class AddonManager:
    """
    Reconciles the addons on disk with the workspace library setting and the
    remote registry.

    Holds one LocalAddon per directory of `install_root`. `scan()` replaces
    them all, dropping every cached value.
    """

    def __init__(
        self,
        install_root: Path,
        *,
        filesystem: FilesystemGateway,
        library: EnabledLibrary,
        registry: RemoteAddonRegistry,
        transport: MessageBus,
    ):
        self.install_root = install_root
        self.filesystem = filesystem
        self.library = library
        self.registry = registry
        self.transport = transport
        self._addons: Dict[str, LocalAddon] = {}

    # ----------------------------
    # Discovery
    # ----------------------------

    def _list_addon_dirs(self) -> List[Path]:
        root = self.install_root
        logger.debug(f"Checking installed addons directory: {root}")
        if not root.exists():
            logger.warning("Install root does not exist: %s", root)
            return []
        return sorted(p for p in root.iterdir() if p.is_dir() and not p.name.startswith("."))

    async def scan(self) -> List[LocalAddon]:
        dirs = await asyncio.to_thread(self._list_addon_dirs)
        self._addons = {
            d.name: LocalAddon(
                d.name,
                d,
                filesystem=self.filesystem,
                library=self.library,
                registry=self.registry,
                transport=self.transport,
            )
            for d in dirs
        }
        logger.info(f"Found {len(self._addons)} installed addon(s): {list(self._addons)}")
        return list(self._addons.values())

    def get_local_addons(self) -> List[LocalAddon]:
        return list(self._addons.values())

    def get_addon(self, name: str) -> LocalAddon:
        """Raises KeyError if no addon by that name was found by the last scan."""
        return self._addons[name]

    # ----------------------------
    # Serialization
    # ----------------------------

    async def list_snapshots(self) -> List[AddonSnapshot]:
        """
        Snapshot every local addon, reading the library setting only once.

        Addons with an unreadable config are skipped. Raises NoWorkspaceError.
        """
        library = await self.library.read()
        addons = self.get_local_addons()

        results = await asyncio.gather(
            *(addon.to_snapshot(library) for addon in addons),
            return_exceptions=True,
        )

        snapshots: List[AddonSnapshot] = []
        for addon, result in zip(addons, results):
            if isinstance(result, ConfigUnreadableError):
                logger.warning("Skipping %s: %s", addon.name, result)
                continue
            if isinstance(result, BaseException):
                raise result
            snapshots.append(result)
        return snapshots

    async def send_local_addons(self) -> List[AddonSnapshot]:
        """Push one `addLocalAddon` message per local addon to the UI."""
        self.transport.set_loading_state("localAddonStore", True)
        try:
            snapshots = await self.list_snapshots()
            for snapshot in snapshots:
                self.transport.send_message("addLocalAddon", {"addons": snapshot.model_dump()})
        finally:
            self.transport.set_loading_state("localAddonStore", False)
        return snapshots

    async def enabled_names(self) -> List[str]:
        """Names of scanned addons present in the library setting, in list order."""
        index = index_library(await self.library.read())
        listed = [name for name in index if name in self._addons]
        return sorted(listed, key=lambda name: index[name].index)

    # ----------------------------
    # Mutations
    # ----------------------------

    async def set_enabled(self, name: str, state: bool) -> bool:
        return await self.get_addon(name).set_enabled(state)

    async def uninstall(self, name: str) -> List[str]:
        """
        Remove the addon from disk (to the trash when configured).

        Its library entry is removed only once the directory is gone, so a
        failed delete leaves the addon installed and enabled. Returns warnings.
        """
        addon = self.get_addon(name)
        warnings: List[str] = []

        try:
            listed = find_entry(await self.library.read(), name) > -1
        except NoWorkspaceError:
            listed = False
            warnings.append("No workspace is open; library setting left unchanged")

        await addon.uninstall()
        self._addons.pop(name, None)

        if listed:
            await addon.set_enabled(False)
        return warnings

    # ----------------------------
    # Updates
    # ----------------------------

    async def check_updates(self) -> List[str]:
        addons = self.get_local_addons()
        results = await asyncio.gather(*(addon.has_update_check() for addon in addons))
        return [addon.name for addon, has_update in zip(addons, results) if has_update]
