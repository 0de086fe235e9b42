"""FastAPI dependency injection helpers."""

import redis.asyncio as aioredis
from fastapi import Depends, Request

from src.config import settings
from src.infrastructure.database import StoreConnection
from src.infrastructure.redis_client import get_redis
from src.services.shipments import ShipmentService


def get_store(request: Request) -> StoreConnection:
    """The app-wide connection handle created by ``create_app``."""
    return request.app.state.store


async def get_shipment_service(
    store: StoreConnection = Depends(get_store),
    redis: aioredis.Redis = Depends(get_redis),
) -> ShipmentService:
    return ShipmentService(store, redis, settings)
