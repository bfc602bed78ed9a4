"""
SQLAlchemy implementations of the repository interfaces.

All repositories of one SqlUnitOfWork share a single AsyncSession, so a
booking creation (car version bump + overlap check + insert) commits or
rolls back as one transaction.

Persistence faults are logged and surfaced as InternalFailureError.
No retry happens here.
"""

import functools
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from car_rental.core.exceptions import InternalFailureError, NotFoundError
from car_rental.core.logging import get_logger
from car_rental.models.booking import Booking
from car_rental.models.car import Car
from car_rental.repositories.base import BookingRepository, CarRepository, UnitOfWork

logger = get_logger(__name__)


def persistence_guard(method):
    """Translate SQLAlchemy errors into InternalFailureError after logging them."""

    @functools.wraps(method)
    async def wrapper(self, *args, **kwargs):
        try:
            return await method(self, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(
                "persistence_failure",
                operation=f"{type(self).__name__}.{method.__name__}",
                error=str(e),
            )
            raise InternalFailureError("Persistence layer failure") from e

    return wrapper


class SqlCarRepository(CarRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    @persistence_guard
    async def get(self, car_id: int) -> Car:
        car = await self.session.get(Car, car_id, populate_existing=True)
        if car is None:
            raise NotFoundError(f"Car {car_id} not found")
        return car

    @persistence_guard
    async def list_all(self) -> list[Car]:
        result = await self.session.execute(select(Car).order_by(Car.created_at.desc(), Car.id.desc()))
        return list(result.scalars().all())

    @persistence_guard
    async def add(self, car: Car) -> Car:
        self.session.add(car)
        await self.session.flush()
        await self.session.refresh(car)
        return car

    @persistence_guard
    async def update(self, car_id: int, patch: dict) -> Car:
        car = await self.get(car_id)
        for field, value in patch.items():
            setattr(car, field, value)
        await self.session.flush()
        await self.session.refresh(car)
        return car

    @persistence_guard
    async def delete(self, car_id: int) -> None:
        car = await self.get(car_id)
        await self.session.delete(car)
        await self.session.flush()

    @persistence_guard
    async def claim(self, car_id: int, expected_version: int) -> bool:
        result = await self.session.execute(
            update(Car)
            .where(Car.id == car_id, Car.version == expected_version)
            .values(version=Car.version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class SqlBookingRepository(BookingRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    @persistence_guard
    async def find_overlapping(
        self,
        car_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[str],
    ) -> list[Booking]:
        # Half-open overlap: [s, e) and [s', e') overlap iff s < e' and s' < e.
        # Served by ix_bookings_car_status.
        result = await self.session.execute(
            select(Booking)
            .where(
                Booking.car_id == car_id,
                Booking.status.in_([getattr(s, "value", s) for s in statuses]),
                Booking.start_date < end,
                Booking.end_date > start,
            )
            .order_by(Booking.start_date.asc())
        )
        return list(result.scalars().all())

    @persistence_guard
    async def insert(self, booking: Booking) -> Booking:
        self.session.add(booking)
        await self.session.flush()
        await self.session.refresh(booking)
        return booking

    @persistence_guard
    async def find_by_id(self, booking_id: int) -> Booking:
        booking = await self.session.get(Booking, booking_id, populate_existing=True)
        if booking is None:
            raise NotFoundError(f"Booking {booking_id} not found")
        return booking

    @persistence_guard
    async def update(
        self,
        booking_id: int,
        patch: dict,
        expected: Optional[dict] = None,
    ) -> Optional[Booking]:
        stmt = update(Booking).where(Booking.id == booking_id)
        for field, value in (expected or {}).items():
            stmt = stmt.where(getattr(Booking, field) == value)

        result = await self.session.execute(
            stmt.values(**patch).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            if expected:
                return None
            raise NotFoundError(f"Booking {booking_id} not found")
        return await self.find_by_id(booking_id)

    @persistence_guard
    async def list_by_user(self, user_id: int) -> list[Booking]:
        result = await self.session.execute(
            select(Booking)
            .where(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return list(result.scalars().all())

    @persistence_guard
    async def list_all(self) -> list[Booking]:
        result = await self.session.execute(
            select(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())
        )
        return list(result.scalars().all())

    @persistence_guard
    async def delete(self, booking_id: int) -> None:
        booking = await self.find_by_id(booking_id)
        await self.session.delete(booking)
        await self.session.flush()

    @persistence_guard
    async def count_for_car(self, car_id: int) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Booking).where(Booking.car_id == car_id)
        )
        return result.scalar_one()


class SqlUnitOfWork(UnitOfWork):

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cars = SqlCarRepository(session)
        self.bookings = SqlBookingRepository(session)

    @persistence_guard
    async def commit(self) -> None:
        await self.session.commit()

    @persistence_guard
    async def rollback(self) -> None:
        await self.session.rollback()
