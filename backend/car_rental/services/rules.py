"""
Pure booking rules: date validation, pricing and the status/payment state
machines. Nothing here touches the database.

Pricing:
    days  = ceil(|end - start| / 1 day), at least 1
    total = daily_price * days + sum(addon_rate * days for selected add-ons)

Status transitions (admin):
    pending   -> confirmed, cancelled
    confirmed -> cancelled, completed
    cancelled, completed are terminal

Owners may only cancel, from pending or confirmed.

Payment transitions (admin only):
    unpaid -> paid -> refunded
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping, Optional

from car_rental.core.exceptions import ForbiddenError, InvalidInputError
from car_rental.core.identity import Identity
from car_rental.models.enums import BookingStatus, PaymentStatus

ONE_DAY = timedelta(days=1)
CENTS = Decimal("0.01")

ADDON_DAILY_RATES: dict[str, Decimal] = {
    "insurance": Decimal("15"),
    "child_seat": Decimal("5"),
    "gps": Decimal("10"),
}

STATUS_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED, BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

OWNER_STATUS_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.UNPAID: frozenset({PaymentStatus.PAID}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def validate_date_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    if start is None or end is None:
        raise InvalidInputError("Start date and end date are required")
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise InvalidInputError("End date must be after start date")
    return start, end


def validate_location(value: Optional[str], field: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise InvalidInputError(f"{field} is required")
    return cleaned


def rental_days(start: datetime, end: datetime) -> int:
    """Whole rental days; a partial day counts as a full one."""
    days, remainder = divmod(abs(end - start), ONE_DAY)
    if remainder:
        days += 1
    return max(days, 1)


def calculate_total_price(
    daily_price,
    start: datetime,
    end: datetime,
    addons: Optional[Mapping[str, bool]] = None,
) -> Decimal:
    days = rental_days(start, end)
    daily_rate = Decimal(str(daily_price))
    if daily_rate < 0:
        raise InvalidInputError("Daily price must be non-negative")

    total = daily_rate * days
    for name, selected in (addons or {}).items():
        if not selected:
            continue
        if name not in ADDON_DAILY_RATES:
            raise InvalidInputError(f"Unknown additional service: {name}")
        total += ADDON_DAILY_RATES[name] * days

    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def check_status_transition(identity: Identity, booking, target: BookingStatus) -> None:
    """
    Raise ForbiddenError unless `identity` may move `booking` to `target`.

    Re-issuing the current status is rejected like any other disallowed
    transition, so a repeated request never rewrites the row.
    """
    current = BookingStatus(booking.status)

    if identity.can_administer():
        allowed = STATUS_TRANSITIONS
    elif identity.owns(booking):
        if target != BookingStatus.CANCELLED:
            raise ForbiddenError("Booking owners may only cancel their booking")
        allowed = OWNER_STATUS_TRANSITIONS
    else:
        raise ForbiddenError("Access denied")

    if not STATUS_TRANSITIONS[current]:
        raise ForbiddenError(f"Booking is already {current.value}")
    if target == current:
        raise ForbiddenError(f"Booking is already {current.value}")
    if target not in allowed[current]:
        raise ForbiddenError(
            f"Cannot change booking status from {current.value} to {target.value}"
        )


def check_payment_transition(identity: Identity, booking, target: PaymentStatus) -> None:
    if not identity.can_administer():
        raise ForbiddenError("Only administrators can change payment status")

    current = PaymentStatus(booking.payment_status)
    if target == current:
        raise ForbiddenError(f"Payment is already {current.value}")
    if target not in PAYMENT_TRANSITIONS[current]:
        raise ForbiddenError(
            f"Cannot change payment status from {current.value} to {target.value}"
        )
