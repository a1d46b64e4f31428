# backend/alembic/versions/001_ev_booking_schema.py
"""EV booking schema - stations, per-day schedules and bookings

Revision ID: 001_ev_booking_schema
Revises:
Create Date: 2025-01-10 00:00:00.000000

Bookings store their window as UTC instants plus the facility zone they were
resolved in. The QR token columns hold only the current jti; re-issuing a
token overwrites it.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_ev_booking_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create station, schedule and booking tables."""
    print("Creating EV booking tables...")

    op.create_table(
        "stations",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("name", sa.String(200), nullable=False, server_default=""),
        sa.Column("total_slots", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("time_zone", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("total_slots > 0", name="check_total_slots_positive"),
    )
    op.create_index("ix_stations_id", "stations", ["id"])

    op.create_table(
        "station_schedules",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("station_id", sa.String(26), nullable=False),
        sa.Column("schedule_date", sa.Date(), nullable=False),
        sa.Column("open_minutes", sa.Integer(), nullable=False),
        sa.Column("close_minutes", sa.Integer(), nullable=False),
        sa.Column("max_concurrent", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["station_id"], ["stations.id"]),
        sa.UniqueConstraint("station_id", "schedule_date", name="uq_station_schedule_day"),
        sa.CheckConstraint("max_concurrent > 0", name="check_max_concurrent_positive"),
    )
    op.create_index("ix_station_schedules_id", "station_schedules", ["id"])
    op.create_index("ix_station_schedules_station_id", "station_schedules", ["station_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("station_id", sa.String(26), nullable=False),
        # Window
        sa.Column("start_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("time_zone", sa.String(64), nullable=False),
        # Status
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("status_reason", sa.Text(), nullable=True),
        sa.Column("is_auth_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        # QR tracking
        sa.Column("qr_token", sa.Text(), nullable=True),
        sa.Column("qr_jti", sa.String(64), nullable=True),
        sa.Column("qr_issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qr_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qr_validated_at", sa.DateTime(timezone=True), nullable=True),
        # Timestamps
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["station_id"], ["stations.id"]),
        sa.CheckConstraint("end_utc > start_utc", name="check_booking_window_order"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', 'COMPLETED')",
            name="ck_bookings_status",
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index("ix_bookings_owner_start", "bookings", ["owner_id", "start_utc"])
    op.create_index("ix_bookings_station_start", "bookings", ["station_id", "start_utc"])
    op.create_index("ix_bookings_status_start", "bookings", ["status", "start_utc"])
    op.create_index("ix_bookings_qr_jti", "bookings", ["qr_jti"])

    print("EV booking tables created")


def downgrade() -> None:
    """Drop EV booking tables."""
    print("Dropping EV booking tables...")

    op.drop_index("ix_bookings_qr_jti", table_name="bookings")
    op.drop_index("ix_bookings_status_start", table_name="bookings")
    op.drop_index("ix_bookings_station_start", table_name="bookings")
    op.drop_index("ix_bookings_owner_start", table_name="bookings")
    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_station_schedules_station_id", table_name="station_schedules")
    op.drop_index("ix_station_schedules_id", table_name="station_schedules")
    op.drop_table("station_schedules")

    op.drop_index("ix_stations_id", table_name="stations")
    op.drop_table("stations")
