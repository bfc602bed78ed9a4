"""
Car model: one rentable vehicle in the catalog.

Key design decisions:
- `available` is an administrative flag (is the car offered at all); it is
  independent of date overlap with existing bookings
- `version` is bumped by every booking creation for the car, so two
  concurrent creations for the same car cannot both commit
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Integer, Numeric, String, Text

from car_rental.db.base import Base, TimestampMixin
from car_rental.models.enums import FuelType, Transmission, _sql_in


class Car(Base, TimestampMixin):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, index=True)
    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    year = Column(Integer, nullable=False)
    daily_price = Column(Numeric(10, 2), nullable=False)
    seats = Column(Integer, nullable=False)
    transmission = Column(String(20), nullable=False)
    fuel_type = Column(String(20), nullable=False)
    available = Column(Boolean, nullable=False, default=True)
    image_url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint("year BETWEEN 1900 AND 2099", name="check_car_year_range"),
        CheckConstraint("daily_price >= 0", name="check_car_price_non_negative"),
        CheckConstraint("seats BETWEEN 1 AND 10", name="check_car_seats_range"),
        CheckConstraint(f"transmission IN ({_sql_in(Transmission)})", name="check_car_transmission"),
        CheckConstraint(f"fuel_type IN ({_sql_in(FuelType)})", name="check_car_fuel_type"),
    )

    def __repr__(self) -> str:
        return f"<Car(id={self.id}, {self.year} {self.make} {self.model}, available={self.available})>"
