from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request

from .core.config import Settings, settings
from .core.log import configure_logging

from .api.routes import router as api_router
import coldchain.api.routes as routes_module

from .context import MonitorContext, build_context


logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings = settings,
    context_factory: Callable[[Settings], MonitorContext] = build_context,
) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging()
        logger.info(
            "Starting %s (store=%s root=%s)",
            app_settings.app_name, app_settings.store_mode, app_settings.store_root,
        )

        ctx = context_factory(app_settings)
        await ctx.start()
        app.state.context = ctx

        try:
            yield
        finally:
            await ctx.aclose()
            logger.info("Shutdown complete")

    def get_context(request: Request) -> MonitorContext:
        return request.app.state.context

    app = FastAPI(title=app_settings.app_name, lifespan=lifespan)

    # Make the dependency function in routes resolve to the real one
    app.dependency_overrides[routes_module.get_context] = get_context

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()
