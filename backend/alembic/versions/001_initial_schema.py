"""Initial schema: cars and bookings with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Cars table
    op.create_table(
        "cars",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("make", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("daily_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("seats", sa.Integer(), nullable=False),
        sa.Column("transmission", sa.String(20), nullable=False),
        sa.Column("fuel_type", sa.String(20), nullable=False),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("year BETWEEN 1900 AND 2099", name="check_car_year_range"),
        sa.CheckConstraint("daily_price >= 0", name="check_car_price_non_negative"),
        sa.CheckConstraint("seats BETWEEN 1 AND 10", name="check_car_seats_range"),
        sa.CheckConstraint("transmission IN ('automatic', 'manual')", name="check_car_transmission"),
        sa.CheckConstraint(
            "fuel_type IN ('petrol', 'diesel', 'electric', 'hybrid')", name="check_car_fuel_type"
        ),
    )
    op.create_index("ix_cars_id", "cars", ["id"])

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("car_id", sa.Integer(), sa.ForeignKey("cars.id"), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'unpaid'")),
        sa.Column("pickup_location", sa.String(255), nullable=False),
        sa.Column("dropoff_location", sa.String(255), nullable=False),
        sa.Column("insurance", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("child_seat", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("gps", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("end_date > start_date", name="check_booking_dates_ordered"),
        sa.CheckConstraint("total_price >= 0", name="check_booking_price_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed')", name="check_booking_status"
        ),
        sa.CheckConstraint(
            "payment_status IN ('unpaid', 'paid', 'refunded')", name="check_booking_payment_status"
        ),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_user_id", "bookings", ["user_id"])
    # OVERLAP CHECK INDEX: every booking attempt and availability query filters
    # on one car and the blocking statuses before comparing dates.
    op.create_index("ix_bookings_car_status", "bookings", ["car_id", "status"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("cars")
