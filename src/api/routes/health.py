"""
Service endpoints
=================

GET /health           -- process, database and Redis connectivity
GET /                 -- banner
ANY /shipments/...    -- legacy prefix, 307 redirect to /api/shipments/...
"""

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from src.api.dependencies import get_store
from src.api.schemas import HealthResponse
from src.infrastructure.database import StoreConnection
from src.infrastructure.redis_client import get_redis, ping_redis

router = APIRouter(tags=["service"])


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(
    store: StoreConnection = Depends(get_store),
    redis: aioredis.Redis = Depends(get_redis),
):
    return HealthResponse(
        database="connected" if await store.ping() else "disconnected",
        cache="connected" if await ping_redis(redis) else "disconnected",
    )


@router.get("/", summary="Service banner")
async def root():
    return {"message": "Shipment Tracker API is running"}


@router.api_route(
    "/shipments{rest:path}",
    methods=["GET", "POST", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def legacy_redirect(request: Request, rest: str):
    target = f"/api/shipments{rest}"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return RedirectResponse(target, status_code=307)
