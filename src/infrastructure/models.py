"""
SQLAlchemy ORM models  (maps to PostgreSQL + PostGIS).

A shipment is stored as one row: scalar columns for what is filtered or
sorted on, ``JSONB`` document columns for the nested location, checkpoint,
history, customer and item structures.  Each mutation rewrites the row in
a single statement, which PostgreSQL applies atomically.

Indexes
-------
* **GIST** on ``current_point`` for the nearby (``ST_DWithin``) query.
* **B-Tree** on ``status`` and ``created_at`` for filtering and default
  ordering; ``tracking_number`` is covered by its unique constraint.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from geoalchemy2 import Geometry

from .database import Base
from src.domain.enums import ShipmentStatus


class ShipmentModel(Base):
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tracking_number = Column(String(14), unique=True, nullable=False)
    status = Column(
        Enum(
            ShipmentStatus,
            name="shipmentstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ShipmentStatus.PENDING,
        nullable=False,
    )

    # Documents: {"type": "Point", "coordinates": [lng, lat], "address", "timestamp"}
    origin = Column(JSONB, nullable=False)
    destination = Column(JSONB, nullable=False)
    current_location = Column(JSONB, nullable=False)
    checkpoints = Column(JSONB, nullable=False, default=list)
    history = Column(JSONB, nullable=False, default=list)
    customer = Column(JSONB, nullable=False)
    items = Column(JSONB, nullable=False, default=list)

    # Mirror of current_location.coordinates for spatial indexing
    current_point = Column(Geometry("POINT", srid=4326), nullable=False)

    estimated_delivery = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_shipments_current_point", "current_point", postgresql_using="gist"),
        Index("idx_shipments_status", "status"),
        Index("idx_shipments_created_at", "created_at"),
    )
