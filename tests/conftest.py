"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The PostGIS point column is replaced by a
plain String column in a mirror model, and the nearby query is answered
in Python with the haversine distance.  Redis is an ``AsyncMock``.
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, Column, DateTime, Integer, String, select
from sqlalchemy.orm import DeclarativeBase

from src.domain.distance import distance_km
from src.infrastructure.database import StoreConnection
from src.infrastructure.repositories import ShipmentRepository


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class TestBase(DeclarativeBase):
    pass


# Mirror the production model but without PostGIS / JSONB columns
# (SQLite doesn't support them).

class TestShipmentModel(TestBase):
    __tablename__ = "shipments"
    id = Column(Integer, primary_key=True, autoincrement=True)
    tracking_number = Column(String(14), unique=True, nullable=False)
    status = Column(String(20), default="pending", nullable=False)
    origin = Column(JSON, nullable=False)
    destination = Column(JSON, nullable=False)
    current_location = Column(JSON, nullable=False)
    checkpoints = Column(JSON, nullable=False, default=list)
    history = Column(JSON, nullable=False, default=list)
    customer = Column(JSON, nullable=False)
    items = Column(JSON, nullable=False, default=list)
    current_point = Column(String, nullable=False)  # stub for Geometry
    estimated_delivery = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))


class SQLiteShipmentRepository(ShipmentRepository):
    """``ShipmentRepository`` over the mirror model."""

    model = TestShipmentModel

    def point_value(self, location):
        return f"POINT({location.longitude} {location.latitude})"

    async def find_near(self, longitude, latitude, max_distance_m):
        result = await self.session.execute(select(self.model))
        here = (longitude, latitude)
        by_distance = sorted(
            (
                (distance_km(here, s.current_location.coordinates) * 1000, s)
                for s in map(self.to_entity, result.scalars().all())
            ),
            key=lambda pair: pair[0],
        )
        return [s for meters, s in by_distance if meters <= max_distance_m]


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[StoreConnection, None]:
    """Fresh in-memory database; services use the SQLite repository."""
    store = StoreConnection(TEST_DB_URL)
    async with store.engine.begin() as conn:
        await conn.run_sync(TestBase.metadata.create_all)

    with patch("src.services.shipments.ShipmentRepository", SQLiteShipmentRepository):
        yield store

    await store.close()


@pytest.fixture
def redis() -> AsyncMock:
    """Redis stand-in whose locks are always free."""
    mock_redis = AsyncMock()
    mock_redis.set = AsyncMock(return_value=True)
    mock_redis.eval = AsyncMock(return_value=1)
    mock_redis.ping = AsyncMock(return_value=True)
    return mock_redis


@pytest_asyncio.fixture
async def client(store, redis) -> AsyncGenerator[AsyncClient, None]:
    from src.api.app import create_app
    from src.api.middleware import limiter
    from src.infrastructure.redis_client import get_redis

    limiter.reset()
    app = create_app(store)
    app.dependency_overrides[get_redis] = lambda: redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
