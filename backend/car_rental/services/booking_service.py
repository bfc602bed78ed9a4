"""
Booking lifecycle: creation with pricing and availability gate, status and
payment transitions, and owner/admin scoped reads and deletes.

CONCURRENCY STRATEGY: Per-car lock + Optimistic car version
===========================================================

Problem:
  Two users book the same car for overlapping dates simultaneously.
  Both run the overlap check before either inserts, both see no conflict,
  both succeed. Result: double booking.

Solution:
  1. Hold the per-car lock (CarLockStrategy) across check, insert and commit.
     Creations for the same car queue up instead of racing.
  2. Inside the transaction, bump the car's version:
       UPDATE cars SET version = version + 1
       WHERE id = :car_id AND version = :seen_version
     If rows_affected == 0 another creation committed first -> rollback,
     re-run the overlap check on fresh data (bounded retries).

  The lock keeps the common case free of retries; the version bump is what
  makes the guarantee hold even when the lock fails open or is bypassed.

Transitions:
  Status and payment writes are conditional on the value that was
  validated (UPDATE ... WHERE status = :seen). If another request changed it
  in between, the transition is re-read and re-validated, never applied to
  a stale state.
"""

from typing import Optional

from car_rental.core.config import get_settings
from car_rental.core.exceptions import BookingError, ConflictError, ForbiddenError
from car_rental.core.identity import Identity
from car_rental.core.logging import get_logger
from car_rental.core.metrics import (
    booking_latency,
    record_booking_attempt,
    record_db_retry,
    record_transition,
)
from car_rental.models.booking import Booking
from car_rental.models.enums import BookingStatus, PaymentStatus
from car_rental.repositories.base import UnitOfWork
from car_rental.schemas.booking import BookingCreate
from car_rental.services.availability_service import find_conflicts
from car_rental.services.interfaces.car_lock import CarLockStrategy
from car_rental.services.rules import (
    calculate_total_price,
    check_payment_transition,
    check_status_transition,
    validate_date_range,
    validate_location,
)

logger = get_logger(__name__)
settings = get_settings()


def _retries(max_retries: Optional[int]) -> int:
    """Attempts allowed for one write; an explicit 0 allows none."""
    return settings.BOOKING_MAX_RETRIES if max_retries is None else max_retries


async def create_booking(
    uow: UnitOfWork,
    identity: Identity,
    booking_data: BookingCreate,
    lock: CarLockStrategy,
    max_retries: Optional[int] = None,
) -> Booking:
    """
    Create a pending, unpaid booking for the caller.

    Raises:
        InvalidInputError: reversed/empty date range, missing locations
        NotFoundError: unknown car
        ConflictError: car already booked for an overlapping range
        InternalFailureError: persistence failure
    """
    try:
        with booking_latency.time():
            booking = await _create_booking(
                uow, identity, booking_data, lock, _retries(max_retries)
            )
    except BookingError as e:
        record_booking_attempt(e.kind)
        raise
    record_booking_attempt("success")
    return booking


async def _create_booking(
    uow: UnitOfWork,
    identity: Identity,
    booking_data: BookingCreate,
    lock: CarLockStrategy,
    max_retries: int,
) -> Booking:
    car_id = booking_data.car_id
    start, end = validate_date_range(booking_data.start_date, booking_data.end_date)
    pickup = validate_location(booking_data.pickup_location, "Pickup location")
    dropoff = validate_location(booking_data.dropoff_location, "Dropoff location")
    addons = booking_data.additional_services.selected()

    async with lock.hold(car_id):
        for attempt in range(1, max_retries + 1):
            car = await uow.cars.get(car_id)

            conflicts = await find_conflicts(uow, car_id, start, end)
            if conflicts:
                logger.warning(
                    "booking_conflict",
                    car_id=car_id,
                    user_id=identity.user_id,
                    start=start.isoformat(),
                    end=end.isoformat(),
                    conflicting_ids=[b.id for b in conflicts],
                )
                raise ConflictError("Car not available for selected dates")

            if not await uow.cars.claim(car_id, car.version):
                logger.info(
                    "booking_retry",
                    car_id=car_id,
                    attempt=attempt,
                    reason="version_conflict",
                )
                record_db_retry("create")
                await uow.rollback()
                continue

            booking = await uow.bookings.insert(
                Booking(
                    user_id=identity.user_id,
                    car_id=car_id,
                    start_date=start,
                    end_date=end,
                    total_price=calculate_total_price(car.daily_price, start, end, addons),
                    status=BookingStatus.PENDING.value,
                    payment_status=PaymentStatus.UNPAID.value,
                    pickup_location=pickup,
                    dropoff_location=dropoff,
                    insurance=addons["insurance"],
                    child_seat=addons["child_seat"],
                    gps=addons["gps"],
                )
            )
            await uow.commit()

            logger.info(
                "booking_created",
                booking_id=booking.id,
                user_id=identity.user_id,
                car_id=car_id,
                total_price=str(booking.total_price),
                attempt=attempt,
            )
            return booking

    raise ConflictError("Booking failed due to high demand. Please try again.")


async def update_booking_status(
    uow: UnitOfWork,
    identity: Identity,
    booking_id: int,
    target: BookingStatus,
    max_retries: Optional[int] = None,
) -> Booking:
    """
    Move a booking to `target` status.

    Owners may cancel a pending or confirmed booking; admins follow the full
    state machine. Price and availability are not re-evaluated: a cancelled
    booking simply stops blocking its range.
    """
    target = BookingStatus(target)
    max_retries = _retries(max_retries)

    for attempt in range(1, max_retries + 1):
        booking = await uow.bookings.find_by_id(booking_id)
        previous = booking.status
        try:
            check_status_transition(identity, booking, target)
        except ForbiddenError as e:
            record_transition("status", target.value, applied=False)
            logger.warning(
                "booking_status_rejected",
                booking_id=booking_id,
                user_id=identity.user_id,
                current=previous,
                target=target.value,
                reason=e.message,
            )
            raise

        updated = await uow.bookings.update(
            booking_id,
            {"status": target.value},
            expected={"status": previous},
        )
        if updated is None:
            logger.info("booking_retry", booking_id=booking_id, attempt=attempt, reason="status_changed")
            record_db_retry("status")
            await uow.rollback()
            continue

        await uow.commit()
        record_transition("status", target.value, applied=True)
        logger.info(
            "booking_status_changed",
            booking_id=booking_id,
            user_id=identity.user_id,
            previous=previous,
            status=target.value,
        )
        return updated

    raise ConflictError("Booking was modified concurrently. Please try again.")


async def update_payment_status(
    uow: UnitOfWork,
    identity: Identity,
    booking_id: int,
    target: PaymentStatus,
    max_retries: Optional[int] = None,
) -> Booking:
    """Admin-only payment transition. Never touches the booking status."""
    target = PaymentStatus(target)
    max_retries = _retries(max_retries)

    for attempt in range(1, max_retries + 1):
        booking = await uow.bookings.find_by_id(booking_id)
        previous = booking.payment_status
        try:
            check_payment_transition(identity, booking, target)
        except ForbiddenError as e:
            record_transition("payment", target.value, applied=False)
            logger.warning(
                "payment_status_rejected",
                booking_id=booking_id,
                user_id=identity.user_id,
                current=previous,
                target=target.value,
                reason=e.message,
            )
            raise

        updated = await uow.bookings.update(
            booking_id,
            {"payment_status": target.value},
            expected={"payment_status": previous},
        )
        if updated is None:
            logger.info("booking_retry", booking_id=booking_id, attempt=attempt, reason="payment_changed")
            record_db_retry("payment")
            await uow.rollback()
            continue

        await uow.commit()
        record_transition("payment", target.value, applied=True)
        logger.info(
            "payment_status_changed",
            booking_id=booking_id,
            user_id=identity.user_id,
            previous=previous,
            payment_status=target.value,
        )
        return updated

    raise ConflictError("Booking was modified concurrently. Please try again.")


async def get_booking(uow: UnitOfWork, identity: Identity, booking_id: int) -> Booking:
    booking = await uow.bookings.find_by_id(booking_id)
    if not (identity.owns(booking) or identity.can_administer()):
        raise ForbiddenError("Access denied")
    return booking


async def list_user_bookings(uow: UnitOfWork, identity: Identity) -> list[Booking]:
    """Get all bookings of the caller, newest first."""
    return await uow.bookings.list_by_user(identity.user_id)


async def list_all_bookings(uow: UnitOfWork, identity: Identity) -> list[Booking]:
    if not identity.can_administer():
        raise ForbiddenError("Access denied: Admins only")
    return await uow.bookings.list_all()


async def delete_booking(uow: UnitOfWork, identity: Identity, booking_id: int) -> None:
    booking = await get_booking(uow, identity, booking_id)
    await uow.bookings.delete(booking.id)
    await uow.commit()
    logger.info(
        "booking_deleted",
        booking_id=booking_id,
        user_id=identity.user_id,
        status=booking.status,
    )
