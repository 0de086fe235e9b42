"""Initial schema with PostGIS extension and the shipments table.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB
from geoalchemy2 import Geometry


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

STATUSES = ("pending", "in_transit", "out_for_delivery", "delivered", "exception")


def upgrade() -> None:
    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # ── shipments ─────────────────────────────────────────────────────
    op.create_table(
        "shipments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tracking_number", sa.String(14), unique=True, nullable=False),
        sa.Column(
            "status",
            sa.Enum(*STATUSES, name="shipmentstatus"),
            server_default="pending",
            nullable=False,
        ),
        sa.Column("origin", JSONB, nullable=False),
        sa.Column("destination", JSONB, nullable=False),
        sa.Column("current_location", JSONB, nullable=False),
        sa.Column("checkpoints", JSONB, nullable=False, server_default="[]"),
        sa.Column("history", JSONB, nullable=False, server_default="[]"),
        sa.Column("customer", JSONB, nullable=False),
        sa.Column("items", JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "current_point", Geometry("POINT", srid=4326), nullable=False
        ),
        sa.Column(
            "estimated_delivery", sa.DateTime(timezone=True), nullable=False
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "idx_shipments_current_point",
        "shipments",
        ["current_point"],
        postgresql_using="gist",
    )
    op.create_index("idx_shipments_status", "shipments", ["status"])
    op.create_index("idx_shipments_created_at", "shipments", ["created_at"])


def downgrade() -> None:
    op.drop_table("shipments")
    op.execute("DROP TYPE IF EXISTS shipmentstatus")
