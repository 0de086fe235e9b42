"""
Route progress and ETA.

The route is modelled as the waypoint polyline
``origin -> checkpoint_1 -> ... -> checkpoint_n -> destination``.

Distance traveled
-----------------
The current location is placed on the first segment ``(a, b)`` for which
``d(a, cur) + d(cur, b) <= d(a, b) * tolerance`` (tolerance 1.1 allows
10 % off-route drift).  Traveled distance is then the length of all prior
segments plus ``d(a, cur)``.  If the location fits no segment, the direct
distance from the origin is used instead.

Remaining distance
------------------
Always the direct distance from the current location to the destination,
not the distance left along the polyline.

Progress is capped at 99 % -- only an explicit ``delivered`` status means
the shipment has arrived.

Complexity: O(n) in the number of checkpoints.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence

from .distance import distance_km
from .entities import Location, Shipment, utcnow
from .enums import ShipmentStatus

ROUTE_TOLERANCE = 1.1
MAX_PROGRESS = 99
AVERAGE_SPEED_KMH = 50.0


@dataclass(frozen=True)
class CheckpointDistance:
    checkpoint_name: str
    distance: float


@dataclass(frozen=True)
class CheckpointSummary:
    name: str
    address: str
    reached: bool
    estimated_arrival: Optional[datetime]


@dataclass(frozen=True)
class RouteProgress:
    tracking_number: str
    distance_traveled: float
    remaining_distance: float
    total_distance: float
    progress: int
    checkpoints: list[CheckpointSummary] = field(default_factory=list)
    checkpoint_distances: list[CheckpointDistance] = field(default_factory=list)


@dataclass(frozen=True)
class EtaEstimate:
    tracking_number: str
    current_location: Location
    destination: Location
    distance: float
    estimated_time_hours: float
    eta: datetime
    status: ShipmentStatus


def route_points(shipment: Shipment) -> list[tuple[float, float]]:
    """Waypoint polyline as ``(longitude, latitude)`` pairs."""
    return (
        [shipment.origin.coordinates]
        + [cp.location.coordinates for cp in shipment.checkpoints]
        + [shipment.destination.coordinates]
    )


def segment_lengths(points: Sequence[tuple[float, float]]) -> list[float]:
    return [distance_km(points[i], points[i + 1]) for i in range(len(points) - 1)]


def distance_along_route(
    points: Sequence[tuple[float, float]],
    current: tuple[float, float],
    tolerance: float = ROUTE_TOLERANCE,
) -> Optional[float]:
    """Distance from ``points[0]`` to *current* along the polyline.

    Returns ``None`` when *current* is not near any segment.
    """
    traveled = 0.0
    for start, end in zip(points, points[1:]):
        length = distance_km(start, end)
        to_start = distance_km(start, current)
        if to_start + distance_km(current, end) <= length * tolerance:
            return traveled + to_start
        traveled += length
    return None


def progress_percent(traveled: float, total: float) -> int:
    ratio = traveled / total if total > 0 else 0.0
    # halves round up
    return max(0, min(math.floor(ratio * 100 + 0.5), MAX_PROGRESS))


def compute_route_progress(
    shipment: Shipment, tolerance: float = ROUTE_TOLERANCE
) -> RouteProgress:
    points = route_points(shipment)
    current = shipment.current_location.coordinates
    lengths = segment_lengths(points)
    total = sum(lengths)

    traveled = distance_along_route(points, current, tolerance)
    if traveled is None:
        traveled = distance_km(shipment.origin.coordinates, current)

    # Segments that start at a checkpoint and end at the next checkpoint
    checkpoint_distances = [
        CheckpointDistance(
            checkpoint_name=shipment.checkpoints[i - 1].name,
            distance=lengths[i],
        )
        for i in range(1, len(lengths) - 1)
    ]

    return RouteProgress(
        tracking_number=shipment.tracking_number,
        distance_traveled=traveled,
        remaining_distance=distance_km(current, shipment.destination.coordinates),
        total_distance=total,
        progress=progress_percent(traveled, total),
        checkpoints=[
            CheckpointSummary(
                name=cp.name,
                address=cp.location.address,
                reached=cp.reached,
                estimated_arrival=cp.estimated_arrival,
            )
            for cp in shipment.checkpoints
        ],
        checkpoint_distances=checkpoint_distances,
    )


def estimate_eta(
    shipment: Shipment,
    average_speed_kmh: float = AVERAGE_SPEED_KMH,
    now: Optional[datetime] = None,
) -> EtaEstimate:
    """Direct-line ETA at a constant average ground speed."""
    now = now or utcnow()
    distance = distance_km(
        shipment.current_location.coordinates, shipment.destination.coordinates
    )
    hours = distance / average_speed_kmh
    return EtaEstimate(
        tracking_number=shipment.tracking_number,
        current_location=shipment.current_location,
        destination=shipment.destination,
        distance=distance,
        estimated_time_hours=hours,
        eta=now + timedelta(hours=hours),
        status=shipment.status,
    )
