"""Pydantic request / response schemas for the REST API.

Field names are snake_case in Python and camelCase on the wire
(``trackingNumber``, ``currentLocation``, ...).
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from src.domain.enums import ShipmentStatus

Longitude = Annotated[float, Field(ge=-180, le=180)]
Latitude = Annotated[float, Field(ge=-90, le=90)]


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ── Requests ──────────────────────────────────────────────────────────


class LocationIn(ApiModel):
    coordinates: tuple[Longitude, Latitude] = Field(
        ..., description="[longitude, latitude]"
    )
    address: str = Field(..., min_length=1)


class CheckpointIn(ApiModel):
    location: LocationIn
    name: str = Field(..., min_length=1)
    estimated_arrival: Optional[datetime] = None
    notes: str = ""


class CustomerIn(ApiModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: str = ""


class DimensionsIn(ApiModel):
    length: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    height: Optional[float] = Field(None, ge=0)


class ItemIn(ApiModel):
    description: str = ""
    quantity: int = Field(1, ge=1)
    weight: Optional[float] = Field(None, ge=0)
    dimensions: Optional[DimensionsIn] = None


class ShipmentCreateRequest(ApiModel):
    origin: LocationIn
    destination: LocationIn
    customer: CustomerIn
    checkpoints: list[CheckpointIn] = []
    items: list[ItemIn] = []
    estimated_delivery: Optional[datetime] = Field(
        None, description="Defaults to three days from now."
    )


class LocationUpdateRequest(ApiModel):
    coordinates: tuple[Longitude, Latitude] = Field(
        ..., description="[longitude, latitude]"
    )
    address: str = Field(..., min_length=1)
    status: Optional[ShipmentStatus] = None
    description: Optional[str] = None


class StatusUpdateRequest(ApiModel):
    status: ShipmentStatus
    description: Optional[str] = None


class CheckpointUpdateRequest(ApiModel):
    name: Optional[str] = Field(None, min_length=1)
    estimated_arrival: Optional[datetime] = None
    reached: Optional[bool] = None
    notes: Optional[str] = None
    location: Optional[LocationIn] = None


# ── Responses ─────────────────────────────────────────────────────────


class LocationOut(ApiModel):
    type: Literal["Point"] = "Point"
    coordinates: tuple[float, float]
    address: str
    timestamp: Optional[datetime] = None


class CheckpointOut(ApiModel):
    id: str
    location: LocationOut
    name: str
    estimated_arrival: Optional[datetime] = None
    reached: bool
    notes: str = ""


class HistoryEventOut(ApiModel):
    location: LocationOut
    status: ShipmentStatus
    description: str
    timestamp: datetime


class CustomerOut(ApiModel):
    name: str
    email: str
    phone: str = ""


class DimensionsOut(ApiModel):
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None


class ItemOut(ApiModel):
    description: str = ""
    quantity: int
    weight: Optional[float] = None
    dimensions: Optional[DimensionsOut] = None


class ShipmentOut(ApiModel):
    tracking_number: str
    origin: LocationOut
    destination: LocationOut
    checkpoints: list[CheckpointOut]
    current_location: LocationOut
    status: ShipmentStatus
    estimated_delivery: datetime
    history: list[HistoryEventOut]
    customer: CustomerOut
    items: list[ItemOut]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    pages: int


class ShipmentEnvelope(ApiModel):
    success: bool = True
    data: ShipmentOut
    message: Optional[str] = None


class ShipmentListEnvelope(ApiModel):
    success: bool = True
    data: list[ShipmentOut]
    pagination: Optional[Pagination] = None


class HistoryEnvelope(ApiModel):
    success: bool = True
    data: list[HistoryEventOut]


class EtaOut(ApiModel):
    tracking_number: str
    current_location: LocationOut
    destination: LocationOut
    distance: float = Field(..., description="km, direct line")
    estimated_time_hours: float
    eta: datetime
    status: ShipmentStatus


class EtaEnvelope(ApiModel):
    success: bool = True
    data: EtaOut


class CheckpointSummaryOut(ApiModel):
    name: str
    address: str
    reached: bool
    estimated_arrival: Optional[datetime] = None


class CheckpointDistanceOut(ApiModel):
    checkpoint_name: str
    distance: float


class RouteProgressOut(ApiModel):
    tracking_number: str
    distance_traveled: float
    remaining_distance: float
    total_distance: float
    progress: int = Field(..., ge=0, le=99, description="percent")
    checkpoints: list[CheckpointSummaryOut]
    checkpoint_distances: list[CheckpointDistanceOut]


class RouteProgressEnvelope(ApiModel):
    success: bool = True
    data: RouteProgressOut


class HealthResponse(ApiModel):
    status: str = "ok"
    database: str
    cache: str


class ErrorResponse(ApiModel):
    success: bool = False
    error: str
    details: Optional[str] = None
