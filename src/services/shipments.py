"""
Shipment use cases
==================

Each public coroutine is one API operation.  Reads run a single query;
mutations follow the same shape:

1. take the shipment's Redis lock,
2. load the aggregate, apply the domain method, save it back,
3. all inside ``StoreConnection.run`` so a dropped connection is
   reconnected and the whole read-modify-write retried once.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Iterable, Optional

import redis.asyncio as aioredis

from src.config import Settings, settings as default_settings
from src.domain.entities import (
    Checkpoint,
    Customer,
    HistoryEvent,
    Item,
    Location,
    Shipment,
)
from src.domain.enums import ShipmentStatus
from src.domain.exceptions import ShipmentBusy, ShipmentNotFound
from src.domain.progress import (
    EtaEstimate,
    RouteProgress,
    compute_route_progress,
    estimate_eta,
)
from src.domain.tracking import generate_tracking_number
from src.infrastructure.database import StoreConnection
from src.infrastructure.locks import LockNotAcquired, ShipmentLock
from src.infrastructure.repositories import ShipmentRepository

logger = logging.getLogger(__name__)


class ShipmentService:
    def __init__(
        self,
        store: StoreConnection,
        redis: aioredis.Redis,
        cfg: Settings = default_settings,
    ):
        self.store = store
        self.redis = redis
        self.cfg = cfg

    # ── Helpers ───────────────────────────────────────────────────

    async def _load(self, tracking_number: str) -> Shipment:
        async def work(session):
            shipment = await ShipmentRepository(session).get_by_tracking_number(
                tracking_number
            )
            if shipment is None:
                raise ShipmentNotFound()
            return shipment

        return await self.store.run(work)

    async def _mutate(
        self, tracking_number: str, change: Callable[[Shipment], Any]
    ) -> Shipment:
        async def work(session):
            repo = ShipmentRepository(session)
            shipment = await repo.get_by_tracking_number(tracking_number)
            if shipment is None:
                raise ShipmentNotFound()
            change(shipment)
            return await repo.save(shipment)

        lock = ShipmentLock(
            self.redis,
            tracking_number,
            ttl_seconds=self.cfg.shipment_lock_ttl_seconds,
            wait_seconds=self.cfg.shipment_lock_wait_seconds,
        )
        try:
            async with lock:
                return await self.store.run(work)
        except LockNotAcquired as exc:
            logger.warning("Shipment %s is locked by another writer", tracking_number)
            raise ShipmentBusy() from exc

    # ── Commands ──────────────────────────────────────────────────

    async def create(
        self,
        *,
        origin: Location,
        destination: Location,
        customer: Customer,
        checkpoints: Iterable[Checkpoint] = (),
        items: Iterable[Item] = (),
        estimated_delivery=None,
    ) -> Shipment:
        shipment = Shipment.create(
            tracking_number=generate_tracking_number(),
            origin=origin,
            destination=destination,
            customer=customer,
            checkpoints=checkpoints,
            items=items,
            estimated_delivery=estimated_delivery,
            delivery_days=self.cfg.default_delivery_days,
        )

        async def work(session):
            return await ShipmentRepository(session).add(shipment)

        created = await self.store.run(work)
        logger.info("New shipment created: %s", created.tracking_number)
        return created

    async def update_location(
        self,
        tracking_number: str,
        coordinates: tuple[float, float],
        address: str,
        status: Optional[ShipmentStatus] = None,
        description: Optional[str] = None,
    ) -> Shipment:
        reached: list[Checkpoint] = []

        def change(shipment: Shipment) -> None:
            reached[:] = shipment.update_location(
                coordinates,
                address,
                status=status,
                description=description,
                radius_km=self.cfg.checkpoint_radius_km,
            )

        shipment = await self._mutate(tracking_number, change)
        logger.info("Shipment %s location updated", tracking_number)
        for checkpoint in reached:
            logger.info("Shipment %s reached checkpoint %s", tracking_number, checkpoint.name)
        return shipment

    async def update_location_manually(
        self,
        tracking_number: str,
        coordinates: tuple[float, float],
        address: str,
        status: Optional[ShipmentStatus] = None,
        description: Optional[str] = None,
    ) -> Shipment:
        shipment = await self._mutate(
            tracking_number,
            lambda s: s.update_location_manually(
                coordinates, address, status=status, description=description
            ),
        )
        logger.info("Shipment %s location updated manually", tracking_number)
        return shipment

    async def update_status(
        self,
        tracking_number: str,
        status: ShipmentStatus,
        description: Optional[str] = None,
    ) -> Shipment:
        shipment = await self._mutate(
            tracking_number, lambda s: s.update_status(status, description)
        )
        logger.info("Shipment %s status updated to %s", tracking_number, status.value)
        return shipment

    async def add_checkpoint(
        self, tracking_number: str, checkpoint: Checkpoint
    ) -> Shipment:
        shipment = await self._mutate(
            tracking_number, lambda s: s.add_checkpoint(checkpoint)
        )
        logger.info("Checkpoint added to shipment %s", tracking_number)
        return shipment

    async def update_checkpoint(
        self, tracking_number: str, checkpoint_id: str, **changes: Any
    ) -> Shipment:
        shipment = await self._mutate(
            tracking_number, lambda s: s.update_checkpoint(checkpoint_id, **changes)
        )
        logger.info(
            "Checkpoint %s updated for shipment %s", checkpoint_id, tracking_number
        )
        return shipment

    async def delete_checkpoint(
        self, tracking_number: str, checkpoint_id: str
    ) -> Shipment:
        shipment = await self._mutate(
            tracking_number, lambda s: s.remove_checkpoint(checkpoint_id)
        )
        logger.info(
            "Checkpoint %s deleted from shipment %s", checkpoint_id, tracking_number
        )
        return shipment

    # ── Queries ───────────────────────────────────────────────────

    async def get(self, tracking_number: str) -> Shipment:
        return await self._load(tracking_number)

    async def history(self, tracking_number: str) -> list[HistoryEvent]:
        return (await self._load(tracking_number)).history

    async def eta(self, tracking_number: str) -> EtaEstimate:
        shipment = await self._load(tracking_number)
        return estimate_eta(shipment, average_speed_kmh=self.cfg.average_speed_kmh)

    async def route_progress(self, tracking_number: str) -> RouteProgress:
        shipment = await self._load(tracking_number)
        return compute_route_progress(shipment, tolerance=self.cfg.route_tolerance)

    async def list_shipments(
        self,
        *,
        status: Optional[ShipmentStatus] = None,
        sort_by: str = "createdAt",
        descending: bool = True,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[Shipment], dict[str, int]]:
        """One page of shipments plus pagination info."""

        async def work(session):
            repo = ShipmentRepository(session)
            shipments = await repo.find(
                status=status,
                sort_by=sort_by,
                descending=descending,
                skip=(page - 1) * limit,
                limit=limit,
            )
            return shipments, await repo.count(status=status)

        shipments, total = await self.store.run(work)
        pagination = {
            "total": total,
            "page": page,
            "limit": limit,
            "pages": math.ceil(total / limit),
        }
        return shipments, pagination

    async def nearby(
        self, longitude: float, latitude: float, max_distance_m: float
    ) -> list[Shipment]:
        async def work(session):
            return await ShipmentRepository(session).find_near(
                longitude, latitude, max_distance_m
            )

        return await self.store.run(work)
