"""
FastAPI application factory.

* Registers routes for shipments and service health.
* Holds one ``StoreConnection`` on ``app.state``; the lifespan verifies it
  on startup and disposes it on shutdown.
* Applies rate-limiting, CORS and request-logging middleware.
* Maps domain errors to ``{"success": false, "error": ...}`` responses.
* Swagger / OpenAPI UI available at ``/docs``.
"""

from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.errors import register_exception_handlers
from src.api.middleware import limiter, log_requests
from src.api.routes import health, shipments
from src.config import settings
from src.infrastructure.database import StoreConnection
from src.infrastructure.redis_client import close_redis

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect to the database on startup; release pools on shutdown."""
    store: StoreConnection = app.state.store
    try:
        await store.connect()
    except Exception:
        logger.exception("Failed to connect to the database")
        raise
    yield
    await store.close()
    await close_redis()


def create_app(store: Optional[StoreConnection] = None) -> FastAPI:
    app = FastAPI(
        title="Shipment Tracker API",
        description=(
            "Tracks shipments along a route of checkpoints: location "
            "updates, automatic checkpoint detection, history, route "
            "progress and ETA."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store or StoreConnection.from_settings(settings)

    # Rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    # Routers
    app.include_router(shipments.router, prefix="/api")
    app.include_router(health.router)

    return app
