"""FastAPI app factory for the user item service."""
from __future__ import annotations

import time

from fastapi import FastAPI

from useritems.common.error_envelope import register_error_handlers
from useritems.user_items.routes import router as user_items_router


def create_app() -> FastAPI:
    app = FastAPI(title="User Items")

    register_error_handlers(app)
    app.include_router(user_items_router)

    @app.get("/health")
    async def health_check():
        return {
            "service": "user_items",
            "version": "0.1.0",
            "time": time.time(),
            "status": "ok",
        }

    return app
