"""
Availability check for a car over a date range.

A range [s, e) is unavailable iff some blocking booking (pending or
confirmed) of the same car has [s', e') with s < e' and s' < e. Bookings
that only touch (one ends exactly when the other starts) do not conflict,
so back-to-back rentals are allowed. Cancelled and completed bookings never
block.
"""

from datetime import datetime

from car_rental.core.logging import get_logger
from car_rental.core.metrics import record_availability
from car_rental.models.booking import Booking
from car_rental.models.enums import BLOCKING_STATUSES
from car_rental.repositories.base import UnitOfWork
from car_rental.services.rules import validate_date_range

logger = get_logger(__name__)


async def find_conflicts(
    uow: UnitOfWork,
    car_id: int,
    start: datetime,
    end: datetime,
) -> list[Booking]:
    """Blocking bookings of `car_id` overlapping an already validated range."""
    return await uow.bookings.find_overlapping(car_id, start, end, BLOCKING_STATUSES)


async def is_available(uow: UnitOfWork, car_id: int, start: datetime, end: datetime) -> bool:
    """
    True if no blocking booking of the car overlaps [start, end).

    Raises InvalidInputError for an empty or reversed range and
    NotFoundError for an unknown car. Has no side effects.
    """
    start, end = validate_date_range(start, end)
    await uow.cars.get(car_id)

    conflicts = await find_conflicts(uow, car_id, start, end)
    available = not conflicts
    record_availability(available)
    logger.debug(
        "availability_checked",
        car_id=car_id,
        start=start.isoformat(),
        end=end.isoformat(),
        available=available,
        conflicts=[b.id for b in conflicts],
    )
    return available
