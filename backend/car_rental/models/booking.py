"""
Booking model representing a user's rental of a car for a date range.

Key design decisions:
- Date ranges are half-open: [start_date, end_date)
- Composite index on (car_id, status) serves the overlap query, which only
  looks at pending/confirmed bookings of one car
- Status changes never delete rows; cancelled and completed bookings stay
  for history but no longer block availability
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)

from car_rental.db.base import Base, TimestampMixin
from car_rental.models.enums import BookingStatus, PaymentStatus, _sql_in


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    car_id = Column(Integer, ForeignKey("cars.id"), nullable=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)
    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=False)

    # Additional services
    insurance = Column(Boolean, nullable=False, default=False)
    child_seat = Column(Boolean, nullable=False, default=False)
    gps = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="check_booking_dates_ordered"),
        CheckConstraint("total_price >= 0", name="check_booking_price_non_negative"),
        CheckConstraint(f"status IN ({_sql_in(BookingStatus)})", name="check_booking_status"),
        CheckConstraint(
            f"payment_status IN ({_sql_in(PaymentStatus)})", name="check_booking_payment_status"
        ),
        Index("ix_bookings_car_status", "car_id", "status"),
    )

    @property
    def additional_services(self) -> dict[str, bool]:
        return {"insurance": self.insurance, "child_seat": self.child_seat, "gps": self.gps}

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, car={self.car_id}, user={self.user_id}, "
            f"status={self.status}, payment={self.payment_status})>"
        )
