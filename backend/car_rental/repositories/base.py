"""
Repository interfaces for cars and bookings.
Services depend on these, not on a concrete database session.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

from car_rental.models.booking import Booking
from car_rental.models.car import Car


class CarRepository(ABC):

    @abstractmethod
    async def get(self, car_id: int) -> Car:
        """Return the car or raise NotFoundError."""
        pass

    @abstractmethod
    async def list_all(self) -> list[Car]:
        pass

    @abstractmethod
    async def add(self, car: Car) -> Car:
        pass

    @abstractmethod
    async def update(self, car_id: int, patch: dict) -> Car:
        pass

    @abstractmethod
    async def delete(self, car_id: int) -> None:
        pass

    @abstractmethod
    async def claim(self, car_id: int, expected_version: int) -> bool:
        """
        Bump the car's version if it still equals `expected_version`.

        Returns:
            True if this caller won the bump
            False if another writer bumped it first
        """
        pass


class BookingRepository(ABC):

    @abstractmethod
    async def find_overlapping(
        self,
        car_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[str],
    ) -> list[Booking]:
        """
        Bookings of `car_id` in one of `statuses` whose range overlaps
        [start, end). Ranges that merely touch do not overlap.
        """
        pass

    @abstractmethod
    async def insert(self, booking: Booking) -> Booking:
        pass

    @abstractmethod
    async def find_by_id(self, booking_id: int) -> Booking:
        """Return the booking or raise NotFoundError."""
        pass

    @abstractmethod
    async def update(
        self,
        booking_id: int,
        patch: dict,
        expected: Optional[dict] = None,
    ) -> Optional[Booking]:
        """
        Apply `patch` to the booking.

        If `expected` is given, the write only happens while every field in
        it still holds the expected stored value; otherwise None is returned
        and nothing is written.
        """
        pass

    @abstractmethod
    async def list_by_user(self, user_id: int) -> list[Booking]:
        pass

    @abstractmethod
    async def list_all(self) -> list[Booking]:
        pass

    @abstractmethod
    async def delete(self, booking_id: int) -> None:
        pass

    @abstractmethod
    async def count_for_car(self, car_id: int) -> int:
        pass


class UnitOfWork(ABC):
    """Groups the repositories sharing one transaction."""

    cars: CarRepository
    bookings: BookingRepository

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def rollback(self) -> None:
        pass
