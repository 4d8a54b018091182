from __future__ import annotations


class AddonManagerError(RuntimeError):
    pass


class ConfigUnreadableError(AddonManagerError):
    """The addon's config.json is missing, not JSON, or lacks required fields."""

    def __init__(self, addon: str, reason: str):
        self.addon = addon
        self.reason = reason
        super().__init__(f"Failed to read config for addon '{addon}': {reason}")


class NoWorkspaceError(AddonManagerError):
    """Workspace settings were requested while no workspace is open."""

    recovery_action = "Open Folder"

    def __init__(self, message: str = "No workspace is open"):
        super().__init__(message)


class CatalogLoadError(AddonManagerError):
    pass
