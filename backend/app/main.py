from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI

from backend.app.addons.api.router import router as addons_router
from backend.app.addons.config import AddonManagerSettings, load_settings
from backend.app.addons.context import build_context
from backend.app.logging_config import setup_logging

logger = logging.getLogger("addon_manager.core")


def create_app(settings: Optional[AddonManagerSettings] = None) -> FastAPI:
    app = FastAPI(title="Lua Addon Manager")
    app.include_router(addons_router)

    @app.on_event("startup")
    async def startup_event() -> None:
        cfg = settings or load_settings()
        setup_logging(cfg.log_dir)
        logger.info("Addon manager starting")

        try:
            ctx = build_context(cfg)
            app.state.addon_context = ctx

            # Remote catalog is best-effort: without it update checks report unknown
            ctx.registry.startup_load(
                path=cfg.catalog_path,
                url=cfg.catalog_url,
                timeout=cfg.catalog_timeout,
            )
            await ctx.manager.scan()
            logger.info("Completed addon manager startup tasks")
        except Exception:
            logger.exception("Application startup failed")
            raise

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        logger.info("Addon manager shutting down")
        app.state.addon_context = None

    @app.get("/api/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": "addon-manager"}

    return app


app = create_app()
