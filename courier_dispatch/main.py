"""Courier Dispatch API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map DispatchError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - The DispatchSystem is built in the lifespan and torn down on shutdown:
      simulator stopped, geocoder closed, store disposed

Design Decisions:
    - Lifespan over @app.on_event: cleaner startup/shutdown pairing
    - create_app() factory so tests build an app without touching the global one
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from courier_dispatch.api.error_handlers import register_error_handlers
from courier_dispatch.api.routes import admin, couriers, health, orders
from courier_dispatch.config import Settings, get_settings
from courier_dispatch.infrastructure.observability import setup_logging
from courier_dispatch.services.dispatch_system import build_dispatch_system

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)
    system = build_dispatch_system(settings)
    app.state.dispatch = system
    if settings.seed_on_startup:
        summary = system.admin.initialize_db()
        logger.info(f"Demo data loaded: {summary}")
    logger.info(
        f"Courier Dispatch API started ({settings.store_backend} store)",
    )
    yield
    logger.info("Courier Dispatch API shutting down")
    system.shutdown()
    if system.geocoder is not None:
        await system.geocoder.aclose()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="Courier Dispatch API", version="1.0.0", lifespan=lifespan,
    )
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(health.router)
    app.include_router(orders.router)
    app.include_router(couriers.router)
    app.include_router(admin.router)
    register_error_handlers(app)
    return app


app = create_app()
