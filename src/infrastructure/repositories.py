"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

``ShipmentRepository`` receives an ``AsyncSession`` (unit-of-work) and
converts between the ``Shipment`` aggregate and its row.  Nested value
objects are stored as JSON documents; datetimes as ISO-8601 strings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from geoalchemy2 import Geography
from geoalchemy2.elements import WKTElement
from sqlalchemy import cast, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .models import ShipmentModel
from src.domain.entities import (
    Checkpoint,
    Customer,
    Dimensions,
    HistoryEvent,
    Item,
    Location,
    Shipment,
)
from src.domain.enums import ShipmentStatus
from src.domain.exceptions import DuplicateTrackingNumber, ShipmentNotFound

# Public sort keys (wire names) -> model attributes
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "status": "status",
    "estimatedDelivery": "estimated_delivery",
    "trackingNumber": "tracking_number",
}


# ── Document conversion ───────────────────────────────────────────────


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def location_to_doc(location: Location) -> dict[str, Any]:
    return {
        "type": "Point",
        "coordinates": [location.longitude, location.latitude],
        "address": location.address,
        "timestamp": _dt(location.timestamp),
    }


def location_from_doc(doc: dict[str, Any]) -> Location:
    lng, lat = doc["coordinates"]
    return Location(
        coordinates=(lng, lat),
        address=doc["address"],
        timestamp=_parse_dt(doc.get("timestamp")),
    )


def checkpoint_to_doc(checkpoint: Checkpoint) -> dict[str, Any]:
    return {
        "id": checkpoint.id,
        "location": location_to_doc(checkpoint.location),
        "name": checkpoint.name,
        "estimatedArrival": _dt(checkpoint.estimated_arrival),
        "reached": checkpoint.reached,
        "notes": checkpoint.notes,
    }


def checkpoint_from_doc(doc: dict[str, Any]) -> Checkpoint:
    return Checkpoint(
        id=doc["id"],
        location=location_from_doc(doc["location"]),
        name=doc["name"],
        estimated_arrival=_parse_dt(doc.get("estimatedArrival")),
        reached=bool(doc.get("reached", False)),
        notes=doc.get("notes") or "",
    )


def event_to_doc(event: HistoryEvent) -> dict[str, Any]:
    return {
        "location": location_to_doc(event.location),
        "status": event.status.value,
        "description": event.description,
        "timestamp": _dt(event.timestamp),
    }


def event_from_doc(doc: dict[str, Any]) -> HistoryEvent:
    return HistoryEvent(
        location=location_from_doc(doc["location"]),
        status=ShipmentStatus(doc["status"]),
        description=doc.get("description") or "",
        timestamp=_parse_dt(doc["timestamp"]),
    )


def item_to_doc(item: Item) -> dict[str, Any]:
    dims = item.dimensions
    return {
        "description": item.description,
        "quantity": item.quantity,
        "weight": item.weight,
        "dimensions": (
            {"length": dims.length, "width": dims.width, "height": dims.height}
            if dims
            else None
        ),
    }


def item_from_doc(doc: dict[str, Any]) -> Item:
    dims = doc.get("dimensions")
    return Item(
        description=doc.get("description") or "",
        quantity=doc.get("quantity", 1),
        weight=doc.get("weight"),
        dimensions=Dimensions(**dims) if dims else None,
    )


# ── Repository ────────────────────────────────────────────────────────


class ShipmentRepository:
    model = ShipmentModel

    def __init__(self, session: AsyncSession):
        self.session = session

    def point_value(self, location: Location) -> Any:
        """Value stored in the spatial column for *location*."""
        return WKTElement(
            f"POINT({location.longitude} {location.latitude})", srid=4326
        )

    def _apply(self, row: Any, shipment: Shipment) -> None:
        row.status = shipment.status.value
        row.origin = location_to_doc(shipment.origin)
        row.destination = location_to_doc(shipment.destination)
        row.current_location = location_to_doc(shipment.current_location)
        row.current_point = self.point_value(shipment.current_location)
        row.checkpoints = [checkpoint_to_doc(cp) for cp in shipment.checkpoints]
        row.history = [event_to_doc(e) for e in shipment.history]
        row.customer = {
            "name": shipment.customer.name,
            "email": shipment.customer.email,
            "phone": shipment.customer.phone,
        }
        row.items = [item_to_doc(i) for i in shipment.items]
        row.estimated_delivery = shipment.estimated_delivery
        if shipment.updated_at:
            row.updated_at = shipment.updated_at

    def to_entity(self, row: Any) -> Shipment:
        return Shipment(
            tracking_number=row.tracking_number,
            status=ShipmentStatus(row.status),
            origin=location_from_doc(row.origin),
            destination=location_from_doc(row.destination),
            current_location=location_from_doc(row.current_location),
            checkpoints=[checkpoint_from_doc(d) for d in row.checkpoints or []],
            history=[event_from_doc(d) for d in row.history or []],
            customer=Customer(**row.customer),
            items=[item_from_doc(d) for d in row.items or []],
            estimated_delivery=row.estimated_delivery,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    async def _get_row(self, tracking_number: str) -> Any:
        result = await self.session.execute(
            select(self.model).where(self.model.tracking_number == tracking_number)
        )
        return result.scalar_one_or_none()

    # ── Writes ────────────────────────────────────────────────────

    async def add(self, shipment: Shipment) -> Shipment:
        """Insert a new shipment; the tracking number must be unused."""
        row = self.model(
            tracking_number=shipment.tracking_number,
            created_at=shipment.created_at,
        )
        self._apply(row, shipment)
        self.session.add(row)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicateTrackingNumber() from exc
        return shipment

    async def save(self, shipment: Shipment) -> Shipment:
        row = await self._get_row(shipment.tracking_number)
        if row is None:
            raise ShipmentNotFound()
        self._apply(row, shipment)
        await self.session.flush()
        return shipment

    # ── Reads ─────────────────────────────────────────────────────

    async def get_by_tracking_number(self, tracking_number: str) -> Optional[Shipment]:
        row = await self._get_row(tracking_number)
        return self.to_entity(row) if row is not None else None

    async def find(
        self,
        *,
        status: Optional[ShipmentStatus] = None,
        sort_by: str = "createdAt",
        descending: bool = True,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Shipment]:
        column = getattr(self.model, SORT_FIELDS[sort_by])
        query = select(self.model)
        if status:
            query = query.where(self.model.status == status.value)
        query = (
            query.order_by(column.desc() if descending else column.asc(), self.model.id)
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self.to_entity(row) for row in result.scalars().all()]

    async def count(self, *, status: Optional[ShipmentStatus] = None) -> int:
        query = select(func.count()).select_from(self.model)
        if status:
            query = query.where(self.model.status == status.value)
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def find_near(
        self, longitude: float, latitude: float, max_distance_m: float
    ) -> list[Shipment]:
        """Shipments whose current location is within *max_distance_m*, nearest first."""
        here = func.ST_GeogFromText(f"SRID=4326;POINT({longitude} {latitude})")
        current = cast(self.model.current_point, Geography)
        result = await self.session.execute(
            select(self.model)
            .where(func.ST_DWithin(current, here, max_distance_m))
            .order_by(func.ST_Distance(current, here))
        )
        return [self.to_entity(row) for row in result.scalars().all()]
