from __future__ import annotations

import logging

from fastapi import FastAPI

from bot_adapter.api.routes import router
from bot_adapter.core.config import settings
from bot_adapter.core.logging import configure_logging


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Bot Adapter", version="0.1.0")
    app.include_router(router)

    @app.get("/")
    async def root():
        return {
            "message": "Text analysis and OCR adapter for the chat bot",
            "docs": "/docs",
            "health": "/health",
        }

    @app.on_event("startup")
    async def _startup() -> None:
        logging.getLogger(__name__).info("startup", extra={"app_env": settings.app_env})

    return app


app = create_app()
