"""
Domain entities with business logic.

``Shipment`` is the aggregate root: checkpoints and history events are
owned by it and only change through its methods.  Every mutation appends
an immutable ``HistoryEvent``; history is never rewritten.

Status changes are deliberately unconstrained -- any ``ShipmentStatus``
may follow any other.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from .distance import distance_km
from .enums import ShipmentStatus
from .exceptions import CheckpointNotFound

CHECKPOINT_RADIUS_KM = 0.5
DEFAULT_DELIVERY_DAYS = 3

_CHECKPOINT_FIELDS = {"name", "estimated_arrival", "reached", "notes", "location"}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    coordinates: tuple[float, float]  # (longitude, latitude)
    address: str
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


@dataclass(frozen=True)
class HistoryEvent:
    location: Location
    status: ShipmentStatus
    description: str
    timestamp: datetime


@dataclass(frozen=True)
class Customer:
    name: str
    email: str
    phone: str = ""


@dataclass(frozen=True)
class Dimensions:
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


@dataclass(frozen=True)
class Item:
    description: str = ""
    quantity: int = 1
    weight: Optional[float] = None
    dimensions: Optional[Dimensions] = None


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Checkpoint:
    location: Location
    name: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    estimated_arrival: Optional[datetime] = None
    reached: bool = False
    notes: str = ""


@dataclass
class Shipment:
    tracking_number: str
    origin: Location
    destination: Location
    current_location: Location
    customer: Customer
    estimated_delivery: datetime
    status: ShipmentStatus = ShipmentStatus.PENDING
    checkpoints: list[Checkpoint] = field(default_factory=list)
    history: list[HistoryEvent] = field(default_factory=list)
    items: list[Item] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        *,
        tracking_number: str,
        origin: Location,
        destination: Location,
        customer: Customer,
        checkpoints: Iterable[Checkpoint] = (),
        items: Iterable[Item] = (),
        estimated_delivery: Optional[datetime] = None,
        delivery_days: int = DEFAULT_DELIVERY_DAYS,
        now: Optional[datetime] = None,
    ) -> Shipment:
        """Build a new ``pending`` shipment sitting at its origin."""
        now = now or utcnow()
        shipment = cls(
            tracking_number=tracking_number,
            origin=origin,
            destination=destination,
            current_location=origin,
            customer=customer,
            estimated_delivery=estimated_delivery
            or now + timedelta(days=delivery_days),
            checkpoints=[
                Checkpoint(
                    location=cp.location,
                    name=cp.name,
                    id=cp.id,
                    estimated_arrival=cp.estimated_arrival,
                    notes=cp.notes or "",
                )
                for cp in checkpoints
            ],
            items=list(items),
            created_at=now,
            updated_at=now,
        )
        shipment.record_event("Shipment created", now=now)
        return shipment

    # ── History ───────────────────────────────────────────────────

    def record_event(
        self,
        description: str,
        status: Optional[ShipmentStatus] = None,
        now: Optional[datetime] = None,
    ) -> HistoryEvent:
        """Append a history event at the current location.

        Timestamps never go backwards, even if the clock does.
        """
        now = now or utcnow()
        if self.history and self.history[-1].timestamp > now:
            now = self.history[-1].timestamp
        event = HistoryEvent(
            location=self.current_location,
            status=status or self.status,
            description=description,
            timestamp=now,
        )
        self.history.append(event)
        self.updated_at = now
        return event

    # ── Location & status ─────────────────────────────────────────

    def _move_to(
        self,
        coordinates: tuple[float, float],
        address: str,
        status: Optional[ShipmentStatus],
        now: datetime,
    ) -> None:
        self.current_location = Location(
            coordinates=(float(coordinates[0]), float(coordinates[1])),
            address=address,
            timestamp=now,
        )
        if status:
            self.status = status

    def update_location(
        self,
        coordinates: tuple[float, float],
        address: str,
        status: Optional[ShipmentStatus] = None,
        description: Optional[str] = None,
        radius_km: float = CHECKPOINT_RADIUS_KM,
        now: Optional[datetime] = None,
    ) -> list[Checkpoint]:
        """Tracked update: move, record, then detect reached checkpoints.

        Returns the checkpoints newly marked as reached.
        """
        now = now or utcnow()
        self._move_to(coordinates, address, status, now)
        self.record_event(description or "Location updated", now=now)
        return self.mark_reached_checkpoints(radius_km=radius_km, now=now)

    def update_location_manually(
        self,
        coordinates: tuple[float, float],
        address: str,
        status: Optional[ShipmentStatus] = None,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> HistoryEvent:
        """Manual override: move and record, without proximity detection."""
        now = now or utcnow()
        self._move_to(coordinates, address, status, now)
        return self.record_event(
            description or "Location updated manually", now=now
        )

    def update_status(
        self,
        status: ShipmentStatus,
        description: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> HistoryEvent:
        self.status = status
        return self.record_event(
            description or f"Status updated to {status.value}", now=now
        )

    def mark_reached_checkpoints(
        self,
        radius_km: float = CHECKPOINT_RADIUS_KM,
        now: Optional[datetime] = None,
    ) -> list[Checkpoint]:
        """Mark every unreached checkpoint within *radius_km* as reached.

        All checkpoints are evaluated in route order; several may be
        reached by a single update.
        """
        reached: list[Checkpoint] = []
        current = self.current_location.coordinates
        for checkpoint in self.checkpoints:
            if checkpoint.reached:
                continue
            if distance_km(current, checkpoint.location.coordinates) < radius_km:
                checkpoint.reached = True
                self.record_event(f"Reached checkpoint: {checkpoint.name}", now=now)
                reached.append(checkpoint)
        return reached

    # ── Checkpoints ───────────────────────────────────────────────

    def get_checkpoint(self, checkpoint_id: str) -> Checkpoint:
        for checkpoint in self.checkpoints:
            if checkpoint.id == checkpoint_id:
                return checkpoint
        raise CheckpointNotFound()

    def add_checkpoint(self, checkpoint: Checkpoint) -> Checkpoint:
        checkpoint.reached = False
        checkpoint.notes = checkpoint.notes or ""
        self.checkpoints.append(checkpoint)
        self.updated_at = utcnow()
        return checkpoint

    def update_checkpoint(self, checkpoint_id: str, **changes: Any) -> Checkpoint:
        """Apply *changes* to a checkpoint.

        Only the keys present are touched, so ``estimated_arrival=None``
        clears the estimate.  A False -> True change of ``reached`` is
        recorded in the history.
        """
        unknown = set(changes) - _CHECKPOINT_FIELDS
        if unknown:
            raise TypeError(f"Unknown checkpoint fields: {sorted(unknown)}")

        checkpoint = self.get_checkpoint(checkpoint_id)
        newly_reached = bool(changes.get("reached")) and not checkpoint.reached

        if changes.get("name"):
            checkpoint.name = changes["name"]
        if "estimated_arrival" in changes:
            checkpoint.estimated_arrival = changes["estimated_arrival"]
        if changes.get("notes") is not None:
            checkpoint.notes = changes["notes"]
        if changes.get("location") is not None:
            checkpoint.location = changes["location"]
        if changes.get("reached") is not None:
            checkpoint.reached = bool(changes["reached"])

        if newly_reached:
            self.record_event(f"Checkpoint reached: {checkpoint.name}")
        else:
            self.updated_at = utcnow()
        return checkpoint

    def remove_checkpoint(self, checkpoint_id: str) -> Checkpoint:
        checkpoint = self.get_checkpoint(checkpoint_id)
        self.checkpoints.remove(checkpoint)
        self.updated_at = utcnow()
        return checkpoint
