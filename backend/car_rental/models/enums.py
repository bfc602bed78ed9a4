"""
Enumerations shared by the ORM models, schemas and booking rules.
"""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    REFUNDED = "refunded"


class Transmission(str, enum.Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class FuelType(str, enum.Enum):
    PETROL = "petrol"
    DIESEL = "diesel"
    ELECTRIC = "electric"
    HYBRID = "hybrid"


# Bookings in these states count against a car's availability
BLOCKING_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})


def _sql_in(enum_cls) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)
