from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from .config import CONFIG_FILENAME, PLUGIN_FILENAME, VERSION_FILENAME
from .domain.lookup import Lookup
from .domain.models import AddonConfig, AddonConfigFile, AddonSnapshot
from .errors import ConfigUnreadableError, NoWorkspaceError
from .services.filesystem import FilesystemGateway
from .services.library import EnabledLibrary, find_entry
from .services.registry import RemoteAddonRegistry
from .transport import MessageBus

logger = logging.getLogger("addon_manager.addon")


@dataclass
class _AddonCache:
    # None = not fetched yet. Failed fetches leave their field None.
    display_name: Optional[str] = None
    description: Optional[str] = None
    install_timestamp: Optional[int] = None
    has_plugin: Optional[bool] = None
    size: Optional[int] = None
    enabled: Optional[bool] = None
    has_update: Optional[Lookup[bool]] = None


class LocalAddon:
    """
    An addon (directory) installed locally on this computer.

    Its data is read lazily from disk and kept for the lifetime of this
    object; a rescan creates fresh instances.
    """

    def __init__(
        self,
        name: str,
        location: Path,
        *,
        filesystem: FilesystemGateway,
        library: EnabledLibrary,
        registry: RemoteAddonRegistry,
        transport: MessageBus,
    ):
        self.name = name
        self.location = location
        self._fs = filesystem
        self._library = library
        self._registry = registry
        self._transport = transport
        self._cache = _AddonCache()
        self._update_lock = asyncio.Lock()

    def __repr__(self) -> str:
        return f"LocalAddon(name={self.name!r}, location={str(self.location)!r})"

    @property
    def enabled(self) -> Optional[bool]:
        """Enabled state as of the last get_enabled() call, None if never queried."""
        return self._cache.enabled

    # ----------------------------
    # On-disk metadata
    # ----------------------------

    async def get_config(self) -> AddonConfig:
        """Values from `config.json`. Raises ConfigUnreadableError."""
        cache = self._cache
        if cache.display_name is not None and cache.description is not None:
            return AddonConfig(displayName=cache.display_name, description=cache.description)

        try:
            raw = await self._fs.read_file(self.location / CONFIG_FILENAME)
            config = AddonConfigFile.model_validate_json(raw)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to get config file for {self.name}!")
            if isinstance(e, ValidationError):
                raise ConfigUnreadableError(self.name, f"invalid {CONFIG_FILENAME}") from e
            raise ConfigUnreadableError(self.name, str(e)) from e

        cache.display_name = config.name
        cache.description = config.description
        return AddonConfig(displayName=config.name, description=config.description)

    async def get_version_info(self) -> Optional[int]:
        """Install timestamp (unix ms) from the version marker, None if unknown."""
        if self._cache.install_timestamp is not None:
            return self._cache.install_timestamp

        try:
            raw = await self._fs.read_file(self.location / VERSION_FILENAME)
            timestamp = int(raw.strip())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to get version info for {self.name}! ({e})")
            return None

        self._cache.install_timestamp = timestamp
        return timestamp

    async def get_has_plugin(self) -> Optional[bool]:
        if self._cache.has_plugin is not None:
            return self._cache.has_plugin

        try:
            has_plugin = await self._fs.exists(self.location / PLUGIN_FILENAME)
        except OSError as e:
            logger.warning(f"Failed to check if {self.name} has a plugin! ({e})")
            return None

        self._cache.has_plugin = has_plugin
        return has_plugin

    async def calculate_size(self) -> Optional[int]:
        """
        Size of the addon directory in bytes.

        Slow: walks the entire directory tree on first call.
        """
        if self._cache.size is not None:
            return self._cache.size

        try:
            size = await self._fs.get_directory_size(self.location)
        except OSError as e:
            logger.warning(f"Failed to calculate size of {self.name}! ({e})")
            return None

        self._cache.size = size
        return size

    # ----------------------------
    # Enabled state
    # ----------------------------

    async def get_enabled(self, library: Optional[List[str]] = None) -> bool:
        """
        Whether this addon is listed in the workspace library setting.

        Pass `library` when checking many addons against one read of the
        setting. Raises NoWorkspaceError when no workspace is open.
        """
        if library is None:
            try:
                library = await self._library.read()
            except NoWorkspaceError:
                logger.warning(f"Failed to get enabled state of {self.name}!")
                raise

        enabled = find_entry(library, self.name) > -1
        self._cache.enabled = enabled
        return enabled

    async def set_enabled(self, state: bool) -> bool:
        """
        Add/remove this addon to/from the workspace library setting.

        Returns whether the setting changed. Without a workspace the user is
        offered to open one and nothing is modified.
        """
        try:
            changed = await self._library.set_enabled(self.name, self.location, state)
        except NoWorkspaceError as e:
            self._transport.show_message(str(e), [e.recovery_action])
            return False

        if changed:
            logger.info(f"{self.name} has been {'enabled' if state else 'disabled'}!")
        return changed

    # ----------------------------
    # Updates
    # ----------------------------

    async def check_update(self) -> Lookup[bool]:
        """
        Compare the install timestamp with the remote addon's latest change.

        not_found (no remote addon by this name) and computed results are kept;
        failed results are not, so the next call tries again.
        """
        if self._cache.has_update is not None:
            return self._cache.has_update

        # concurrent callers share one remote lookup
        async with self._update_lock:
            if self._cache.has_update is not None:
                return self._cache.has_update
            return await self._lookup_update()

    async def _lookup_update(self) -> Lookup[bool]:
        remote = self._registry.get(self.name)
        if remote is None:
            logger.warning(f'Remote version of "{self.name}" not found!')
            result: Lookup[bool] = Lookup.not_found("no remote addon with this name")
            self._cache.has_update = result
            return result

        try:
            remote_timestamp = await remote.get_latest_change()
        except Exception as e:
            logger.warning(f'Failed to get latest change of remote "{self.name}": {e}')
            return Lookup.failed(str(e))

        local_timestamp = await self.get_version_info()
        if local_timestamp is None:
            logger.warning(f'Cannot check "{self.name}" for updates: install timestamp unknown')
            return Lookup.failed("install timestamp unknown")

        has_update = remote_timestamp > local_timestamp
        if has_update:
            logger.info(f'Update available for "{self.name}"')

        result = Lookup.computed(has_update)
        self._cache.has_update = result
        return result

    async def has_update_check(self) -> Optional[bool]:
        """True/False when known, None when the update state is unknown."""
        return (await self.check_update()).value

    # ----------------------------
    # Serialization / removal
    # ----------------------------

    async def to_snapshot(self, library: Optional[List[str]] = None) -> AddonSnapshot:
        """
        Aggregate every accessor into one transport-ready record.

        Raises ConfigUnreadableError and NoWorkspaceError.
        """
        config = await self.get_config()
        # read before the update check, which needs it too
        install_timestamp = await self.get_version_info()

        enabled, has_plugin, size, has_update = await asyncio.gather(
            self.get_enabled(library),
            self.get_has_plugin(),
            self.calculate_size(),
            self.has_update_check(),
        )

        return AddonSnapshot(
            name=self.name,
            displayName=config.displayName,
            description=config.description,
            enabled=enabled,
            hasPlugin=has_plugin,
            installTimestamp=install_timestamp,
            size=size,
            hasUpdate=has_update,
        )

    async def uninstall(self) -> None:
        await self._fs.delete_file(self.location, recursive=True, use_trash=True)
        logger.info(f'Uninstalled "{self.name}"')
