# backend/app/addons/api/router.py
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ..context import AddonManagerContext
from ..domain.models import (
    AddonSnapshot,
    EnableResult,
    EnabledAddons,
    OutboundMessage,
    RefreshResult,
    UninstallResult,
    UpdatesResponse,
    WorkspaceState,
)
from ..errors import AddonManagerError, ConfigUnreadableError, NoWorkspaceError
from ..local_addon import LocalAddon

router = APIRouter(prefix="/api/addons", tags=["addons"])
logger = logging.getLogger("addon_manager.api")


def get_context(request: Request) -> AddonManagerContext:
    return request.app.state.addon_context


def _find_addon(ctx: AddonManagerContext, name: str) -> LocalAddon:
    try:
        return ctx.manager.get_addon(name)
    except KeyError:
        logger.error(f"Addon not found: {name}")
        raise HTTPException(status_code=404, detail=f"Addon '{name}' not found")


def _no_workspace(e: NoWorkspaceError) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"message": str(e), "actions": [e.recovery_action]},
    )


def _settings_failure(e: AddonManagerError) -> HTTPException:
    logger.error(f"Workspace settings error: {e}")
    return HTTPException(status_code=500, detail=str(e))


@router.get("/workspace", response_model=WorkspaceState)
def api_workspace_state(ctx: AddonManagerContext = Depends(get_context)) -> WorkspaceState:
    workspace_open = ctx.settings_store.workspace_open
    logger.debug(f"Workspace Open: {workspace_open}")
    return WorkspaceState(workspaceOpen=workspace_open)


@router.get("/local", response_model=List[AddonSnapshot])
async def api_list_local_addons(ctx: AddonManagerContext = Depends(get_context)) -> List[AddonSnapshot]:
    """
    Return a snapshot of every local addon.
    The same records are pushed as `addLocalAddon` messages.
    """
    try:
        return await ctx.manager.send_local_addons()
    except NoWorkspaceError as e:
        raise _no_workspace(e)
    except AddonManagerError as e:
        raise _settings_failure(e)


@router.post("/local/refresh", response_model=RefreshResult)
async def api_refresh_local_addons(ctx: AddonManagerContext = Depends(get_context)) -> RefreshResult:
    logger.info("POST /local/refresh called")
    addons = await ctx.manager.scan()
    return RefreshResult(addons=[a.name for a in addons])


@router.get("/local/enabled", response_model=EnabledAddons)
async def api_enabled_local_addons(ctx: AddonManagerContext = Depends(get_context)) -> EnabledAddons:
    try:
        return EnabledAddons(addons=await ctx.manager.enabled_names())
    except NoWorkspaceError as e:
        raise _no_workspace(e)
    except AddonManagerError as e:
        raise _settings_failure(e)


@router.get("/local/{name}", response_model=AddonSnapshot)
async def api_get_local_addon(name: str, ctx: AddonManagerContext = Depends(get_context)) -> AddonSnapshot:
    addon = _find_addon(ctx, name)
    try:
        return await addon.to_snapshot()
    except ConfigUnreadableError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except NoWorkspaceError as e:
        raise _no_workspace(e)
    except AddonManagerError as e:
        raise _settings_failure(e)


async def _set_enabled(ctx: AddonManagerContext, name: str, state: bool) -> EnableResult:
    addon = _find_addon(ctx, name)
    try:
        changed = await addon.set_enabled(state)
        enabled = await addon.get_enabled()
    except NoWorkspaceError as e:
        raise _no_workspace(e)
    except AddonManagerError as e:
        raise _settings_failure(e)
    return EnableResult(name=name, enabled=enabled, changed=changed)


@router.post("/local/{name}/enable", response_model=EnableResult)
async def api_enable_addon(name: str, ctx: AddonManagerContext = Depends(get_context)) -> EnableResult:
    logger.info(f"Enabling addon {name}")
    return await _set_enabled(ctx, name, True)


@router.post("/local/{name}/disable", response_model=EnableResult)
async def api_disable_addon(name: str, ctx: AddonManagerContext = Depends(get_context)) -> EnableResult:
    logger.info(f"Disabling addon {name}")
    return await _set_enabled(ctx, name, False)


@router.delete("/local/{name}", response_model=UninstallResult)
async def api_uninstall_addon(name: str, ctx: AddonManagerContext = Depends(get_context)) -> UninstallResult:
    _find_addon(ctx, name)
    try:
        warnings = await ctx.manager.uninstall(name)
    except AddonManagerError as e:
        raise _settings_failure(e)
    except OSError as e:
        logger.error(f"Failed to uninstall {name}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to uninstall '{name}': {e}")
    return UninstallResult(name=name, warnings=warnings)


@router.get("/updates", response_model=UpdatesResponse)
async def api_check_updates(ctx: AddonManagerContext = Depends(get_context)) -> UpdatesResponse:
    return UpdatesResponse(updates=await ctx.manager.check_updates())


@router.get("/messages", response_model=List[OutboundMessage])
def api_drain_messages(ctx: AddonManagerContext = Depends(get_context)) -> List[OutboundMessage]:
    """Hand queued UI messages to the caller, oldest first."""
    return ctx.transport.drain()
