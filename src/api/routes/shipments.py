"""
Shipment endpoints
==================

GET    /api/shipments                                   -- list (filter, sort, paginate)
GET    /api/shipments/nearby                            -- shipments near a point
POST   /api/shipments                                   -- create a shipment (201)
GET    /api/shipments/{trackingNumber}                  -- fetch one shipment
PATCH  /api/shipments/{trackingNumber}/location         -- tracked update (checkpoint detection)
PATCH  /api/shipments/{trackingNumber}/location/manual  -- manual override (no detection)
PATCH  /api/shipments/{trackingNumber}/status           -- set status
GET    /api/shipments/{trackingNumber}/history          -- history events
GET    /api/shipments/{trackingNumber}/eta              -- direct-line ETA
GET    /api/shipments/{trackingNumber}/distance         -- route progress
POST   /api/shipments/{trackingNumber}/checkpoints      -- add checkpoint
PATCH  /api/shipments/{trackingNumber}/checkpoints/{id} -- update checkpoint
DELETE /api/shipments/{trackingNumber}/checkpoints/{id} -- delete checkpoint
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request

from src.api.dependencies import get_shipment_service
from src.api.middleware import limiter
from src.api.schemas import (
    CheckpointIn,
    CheckpointUpdateRequest,
    EtaEnvelope,
    EtaOut,
    HistoryEnvelope,
    HistoryEventOut,
    LocationIn,
    LocationOut,
    LocationUpdateRequest,
    Pagination,
    RouteProgressEnvelope,
    RouteProgressOut,
    ShipmentCreateRequest,
    ShipmentEnvelope,
    ShipmentListEnvelope,
    ShipmentOut,
    StatusUpdateRequest,
)
from src.config import settings
from src.domain.entities import Checkpoint, Customer, Dimensions, Item, Location
from src.domain.enums import ShipmentStatus, SortOrder
from src.services.shipments import ShipmentService

router = APIRouter(prefix="/shipments", tags=["shipments"])

RATE = settings.rate_limit

SortField = Literal[
    "createdAt", "updatedAt", "status", "estimatedDelivery", "trackingNumber"
]


def _location(body: LocationIn) -> Location:
    return Location(coordinates=body.coordinates, address=body.address)


def _checkpoint(body: CheckpointIn) -> Checkpoint:
    return Checkpoint(
        location=_location(body.location),
        name=body.name,
        estimated_arrival=body.estimated_arrival,
        notes=body.notes,
    )


def _envelope(shipment, message: Optional[str] = None) -> ShipmentEnvelope:
    return ShipmentEnvelope(data=ShipmentOut.model_validate(shipment), message=message)


# ── Collection ────────────────────────────────────────────────────────


@router.get(
    "",
    response_model=ShipmentListEnvelope,
    summary="List shipments with filtering, sorting and pagination",
)
@limiter.limit(RATE)
async def list_shipments(
    request: Request,
    status: Optional[ShipmentStatus] = Query(None),
    sort_by: SortField = Query("createdAt", alias="sortBy"),
    sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    service: ShipmentService = Depends(get_shipment_service),
):
    shipments, pagination = await service.list_shipments(
        status=status,
        sort_by=sort_by,
        descending=sort_order == SortOrder.DESC,
        page=page,
        limit=limit,
    )
    return ShipmentListEnvelope(
        data=[ShipmentOut.model_validate(s) for s in shipments],
        pagination=Pagination(**pagination),
    )


@router.get(
    "/nearby",
    response_model=ShipmentListEnvelope,
    summary="Shipments whose current location is near a point",
)
@limiter.limit(RATE)
async def nearby_shipments(
    request: Request,
    longitude: float = Query(..., ge=-180, le=180),
    latitude: float = Query(..., ge=-90, le=90),
    max_distance: int = Query(
        10_000, ge=1, le=100_000, alias="maxDistance", description="meters"
    ),
    service: ShipmentService = Depends(get_shipment_service),
):
    shipments = await service.nearby(longitude, latitude, max_distance)
    return ShipmentListEnvelope(data=[ShipmentOut.model_validate(s) for s in shipments])


@router.post(
    "",
    status_code=201,
    response_model=ShipmentEnvelope,
    summary="Create a shipment",
)
@limiter.limit(RATE)
async def create_shipment(
    request: Request,
    body: ShipmentCreateRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = await service.create(
        origin=_location(body.origin),
        destination=_location(body.destination),
        customer=Customer(
            name=body.customer.name,
            email=str(body.customer.email),
            phone=body.customer.phone,
        ),
        checkpoints=[_checkpoint(cp) for cp in body.checkpoints],
        items=[
            Item(
                description=i.description,
                quantity=i.quantity,
                weight=i.weight,
                dimensions=Dimensions(**i.dimensions.model_dump())
                if i.dimensions
                else None,
            )
            for i in body.items
        ],
        estimated_delivery=body.estimated_delivery,
    )
    return _envelope(shipment, "Shipment created successfully")


# ── Single shipment ───────────────────────────────────────────────────


@router.get(
    "/{tracking_number}",
    response_model=ShipmentEnvelope,
    summary="Get a shipment by tracking number",
)
@limiter.limit(RATE)
async def get_shipment(
    request: Request,
    tracking_number: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    return _envelope(await service.get(tracking_number))


@router.patch(
    "/{tracking_number}/location",
    response_model=ShipmentEnvelope,
    summary="Report a tracked location",
    description=(
        "Moves the shipment and marks every unreached checkpoint within "
        "0.5 km as reached."
    ),
)
@limiter.limit(RATE)
async def update_location(
    request: Request,
    tracking_number: str,
    body: LocationUpdateRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = await service.update_location(
        tracking_number,
        body.coordinates,
        body.address,
        status=body.status,
        description=body.description,
    )
    return _envelope(shipment, "Shipment location updated successfully")


@router.patch(
    "/{tracking_number}/location/manual",
    response_model=ShipmentEnvelope,
    summary="Override the location manually",
    description="Moves the shipment without checkpoint detection.",
)
@limiter.limit(RATE)
async def update_location_manually(
    request: Request,
    tracking_number: str,
    body: LocationUpdateRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = await service.update_location_manually(
        tracking_number,
        body.coordinates,
        body.address,
        status=body.status,
        description=body.description,
    )
    return _envelope(shipment, "Shipment location updated successfully")


@router.patch(
    "/{tracking_number}/status",
    response_model=ShipmentEnvelope,
    summary="Set the shipment status",
)
@limiter.limit(RATE)
async def update_status(
    request: Request,
    tracking_number: str,
    body: StatusUpdateRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = await service.update_status(
        tracking_number, body.status, body.description
    )
    return _envelope(shipment, "Shipment status updated successfully")


@router.get(
    "/{tracking_number}/history",
    response_model=HistoryEnvelope,
    summary="Shipment history",
)
@limiter.limit(RATE)
async def get_history(
    request: Request,
    tracking_number: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    history = await service.history(tracking_number)
    return HistoryEnvelope(data=[HistoryEventOut.model_validate(e) for e in history])


@router.get(
    "/{tracking_number}/eta",
    response_model=EtaEnvelope,
    summary="Estimated time of arrival",
    description="Direct distance to the destination at an average 50 km/h.",
)
@limiter.limit(RATE)
async def get_eta(
    request: Request,
    tracking_number: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    eta = await service.eta(tracking_number)
    return EtaEnvelope(
        data=EtaOut(
            tracking_number=eta.tracking_number,
            current_location=LocationOut.model_validate(eta.current_location),
            destination=LocationOut.model_validate(eta.destination),
            distance=round(eta.distance, 2),
            estimated_time_hours=round(eta.estimated_time_hours, 2),
            eta=eta.eta,
            status=eta.status,
        )
    )


@router.get(
    "/{tracking_number}/distance",
    response_model=RouteProgressEnvelope,
    summary="Route distance and progress",
)
@limiter.limit(RATE)
async def get_route_distance(
    request: Request,
    tracking_number: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    progress = await service.route_progress(tracking_number)
    data = RouteProgressOut.model_validate(progress)
    data.distance_traveled = round(progress.distance_traveled, 2)
    data.remaining_distance = round(progress.remaining_distance, 2)
    data.total_distance = round(progress.total_distance, 2)
    for item in data.checkpoint_distances:
        item.distance = round(item.distance, 2)
    return RouteProgressEnvelope(data=data)


# ── Checkpoints ───────────────────────────────────────────────────────


@router.post(
    "/{tracking_number}/checkpoints",
    response_model=ShipmentEnvelope,
    summary="Add a checkpoint to the end of the route",
)
@limiter.limit(RATE)
async def add_checkpoint(
    request: Request,
    tracking_number: str,
    body: CheckpointIn,
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = await service.add_checkpoint(tracking_number, _checkpoint(body))
    return _envelope(shipment, "Checkpoint added successfully")


@router.patch(
    "/{tracking_number}/checkpoints/{checkpoint_id}",
    response_model=ShipmentEnvelope,
    summary="Update a checkpoint",
)
@limiter.limit(RATE)
async def update_checkpoint(
    request: Request,
    tracking_number: str,
    checkpoint_id: str,
    body: CheckpointUpdateRequest,
    service: ShipmentService = Depends(get_shipment_service),
):
    changes = body.model_dump(exclude_unset=True)
    if body.location is not None:
        changes["location"] = _location(body.location)
    shipment = await service.update_checkpoint(
        tracking_number, checkpoint_id, **changes
    )
    return _envelope(shipment, "Checkpoint updated successfully")


@router.delete(
    "/{tracking_number}/checkpoints/{checkpoint_id}",
    response_model=ShipmentEnvelope,
    summary="Delete a checkpoint",
)
@limiter.limit(RATE)
async def delete_checkpoint(
    request: Request,
    tracking_number: str,
    checkpoint_id: str,
    service: ShipmentService = Depends(get_shipment_service),
):
    shipment = await service.delete_checkpoint(tracking_number, checkpoint_id)
    return _envelope(shipment, "Checkpoint deleted successfully")
