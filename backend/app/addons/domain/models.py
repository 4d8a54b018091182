from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# -----------------------------
# On-disk addon metadata
# -----------------------------

class AddonConfigFile(BaseModel):
    """
    Parsed `config.json` found at the root of every addon directory.

    Only `name` and `description` are required; addons ship many more keys
    (settings, words, files) which are kept but not interpreted here.
    """
    model_config = ConfigDict(extra="allow")

    name: str
    description: str


class AddonConfig(BaseModel):
    """Display metadata of a local addon, as shown to the user."""
    model_config = ConfigDict(frozen=True)

    displayName: str
    description: str


class AddonSnapshot(BaseModel):
    """
    Transport-ready view of one local addon.

    Fields that could not be determined are None (unknown), never zero/false.
    """

    name: str
    displayName: str
    description: str
    enabled: bool
    hasPlugin: Optional[bool] = None
    installTimestamp: Optional[int] = None
    size: Optional[int] = None
    hasUpdate: Optional[bool] = None


# -----------------------------
# Remote catalog
# -----------------------------

class RemoteCatalogEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    # unix milliseconds of the most recent change to the remote addon
    latestChange: int


class CatalogDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    generated_at: Optional[str] = None
    addons: List[RemoteCatalogEntry] = Field(default_factory=list)


# -----------------------------
# API DTOs
# -----------------------------

class EnableResult(BaseModel):
    name: str
    enabled: bool
    changed: bool


class UninstallResult(BaseModel):
    name: str
    uninstalled: bool = True
    warnings: List[str] = Field(default_factory=list)


class RefreshResult(BaseModel):
    addons: List[str] = Field(default_factory=list)


class EnabledAddons(BaseModel):
    """Names of local addons listed in the library setting, in list order."""

    addons: List[str] = Field(default_factory=list)


class UpdatesResponse(BaseModel):
    updates: List[str] = Field(default_factory=list)


class WorkspaceState(BaseModel):
    workspaceOpen: bool


class OutboundMessage(BaseModel):
    """A message pushed to the UI: a command name plus its payload."""

    command: str
    data: Dict[str, Any] = Field(default_factory=dict)
