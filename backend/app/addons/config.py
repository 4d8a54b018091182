from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger("addon_manager.config")

# Per-addon files
CONFIG_FILENAME = "config.json"
PLUGIN_FILENAME = "plugin.lua"
VERSION_FILENAME = ".version"

# Workspace setting that holds the enabled addon paths ("Lua.workspace.library")
LIBRARY_SETTING_NAME = "workspace.library"
LIBRARY_SETTING_SECTION = "Lua"

# Identifier of the owning extension, embedded in every enabled addon path
ADDON_NAMESPACE = "sumneko.lua"

SETTINGS_RELATIVE_PATH = Path(".vscode") / "settings.json"

ENV_PREFIX = "ADDON_MANAGER_"


def _default_data_root() -> Path:
    return Path.home() / ".local" / "share" / ADDON_NAMESPACE


class AddonManagerSettings(BaseModel):
    """
    Runtime configuration for the addon manager.

    - install_root: directory holding one sub-directory per installed addon.
    - workspace: the open workspace folder. None means "no workspace", which makes
      every settings read/write fail with NoWorkspaceError.
    - catalog_path / catalog_url: where the remote registry snapshot is loaded from.
    - trash_dir: uninstalled addons are moved here instead of being deleted outright.
    """

    install_root: Path = Field(default_factory=lambda: _default_data_root() / "addons")
    workspace: Optional[Path] = None
    catalog_path: Optional[Path] = None
    catalog_url: Optional[str] = None
    catalog_timeout: float = 20.0
    trash_dir: Path = Field(default_factory=lambda: _default_data_root() / ".trash")
    log_dir: Path = Path("logs")


def load_settings(environ: Optional[dict[str, str]] = None) -> AddonManagerSettings:
    """Build settings from ADDON_MANAGER_* environment variables (unset -> default)."""
    env = os.environ if environ is None else environ

    values: dict[str, object] = {}
    for field_name in AddonManagerSettings.model_fields:
        raw = env.get(f"{ENV_PREFIX}{field_name.upper()}")
        if raw is None or raw.strip() == "":
            continue
        values[field_name] = raw.strip()

    settings = AddonManagerSettings.model_validate(values)
    logger.info(
        "Loaded settings: install_root=%s workspace=%s catalog=%s",
        settings.install_root,
        settings.workspace,
        settings.catalog_url or settings.catalog_path,
    )
    return settings
