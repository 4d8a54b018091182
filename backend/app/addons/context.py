from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import AddonManagerSettings
from .manager import AddonManager
from .services.filesystem import FilesystemGateway
from .services.library import EnabledLibrary
from .services.registry import RemoteAddonRegistry
from .services.settings_store import SettingsStore
from .transport import MessageBus

logger = logging.getLogger("addon_manager.context")


@dataclass
class AddonManagerContext:
    """Everything the addon manager needs, built once by the app entry point."""

    settings: AddonManagerSettings
    filesystem: FilesystemGateway
    settings_store: SettingsStore
    library: EnabledLibrary
    registry: RemoteAddonRegistry
    transport: MessageBus
    manager: AddonManager


def build_context(settings: AddonManagerSettings) -> AddonManagerContext:
    filesystem = FilesystemGateway(trash_dir=settings.trash_dir)
    settings_store = SettingsStore(workspace=settings.workspace)
    library = EnabledLibrary(settings_store)
    registry = RemoteAddonRegistry()
    transport = MessageBus()

    manager = AddonManager(
        settings.install_root,
        filesystem=filesystem,
        library=library,
        registry=registry,
        transport=transport,
    )
    logger.info("Built addon manager context (install_root=%s)", settings.install_root)

    return AddonManagerContext(
        settings=settings,
        filesystem=filesystem,
        settings_store=settings_store,
        library=library,
        registry=registry,
        transport=transport,
        manager=manager,
    )
