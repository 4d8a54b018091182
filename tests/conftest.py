"""Shared fixtures: on-disk addon trees, a workspace and wired-up collaborators."""

import json
import logging
from pathlib import Path

import pytest

from backend.app.addons.config import ADDON_NAMESPACE, SETTINGS_RELATIVE_PATH, AddonManagerSettings
from backend.app.addons.context import AddonManagerContext, build_context


def make_addon(
    root: Path,
    name: str,
    *,
    display_name: str | None = None,
    description: str = "An addon",
    version: str | None = "1000",
    plugin: bool = False,
    config: str | None = None,
) -> Path:
    """Create `<root>/<name>` laid out like an installed addon."""
    addon_dir = root / name
    addon_dir.mkdir(parents=True)
    if config is None:
        config = json.dumps({"name": display_name or name.title(), "description": description})
    (addon_dir / "config.json").write_text(config)
    if version is not None:
        (addon_dir / ".version").write_text(version)
    if plugin:
        (addon_dir / "plugin.lua").write_text("-- plugin")
    lib = addon_dir / "library"
    lib.mkdir()
    (lib / "defs.lua").write_text("---@meta\n")
    return addon_dir


def write_library(workspace: Path, entries: list) -> Path:
    path = workspace / SETTINGS_RELATIVE_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"Lua.workspace.library": entries}))
    return path


def read_library(workspace: Path) -> list:
    data = json.loads((workspace / SETTINGS_RELATIVE_PATH).read_text())
    return data["Lua.workspace.library"]


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    # setup_logging() detaches the namespace from the root logger; undo it so caplog works
    for name in ("addon_manager", "uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        for h in list(lg.handlers):
            lg.removeHandler(h)
            h.close()
        lg.propagate = True


@pytest.fixture
def install_root(tmp_path) -> Path:
    root = tmp_path / "data" / ADDON_NAMESPACE / "addons"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def workspace(tmp_path) -> Path:
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


@pytest.fixture
def settings(tmp_path, install_root, workspace) -> AddonManagerSettings:
    return AddonManagerSettings(
        install_root=install_root,
        workspace=workspace,
        trash_dir=tmp_path / "trash",
        log_dir=tmp_path / "logs",
    )


@pytest.fixture
def ctx(settings) -> AddonManagerContext:
    return build_context(settings)
