"""FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import dispatch, health, multi_orders
from .config import settings

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        description="Sequences multi-stop deliveries, estimates arrival times and records confirmed batches.",
    )
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "distance_configured": bool(settings.google_maps_api_key),
            "database_configured": bool(settings.supabase_url and settings.supabase_key),
            "planning": f"{settings.api_prefix}/multi-orders/sessions",
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    for module in (health, multi_orders, dispatch):
        app.include_router(module.router, prefix=settings.api_prefix)

    if not settings.google_maps_api_key:
        logger.warning("DISPATCH_GOOGLE_MAPS_API_KEY is not set; route planning requests will be rejected")
    return app


app = create_app()
