"""
Small builders shared by the test modules.
"""

from datetime import datetime, timezone
from typing import Optional

from car_rental.schemas.booking import AdditionalServices, BookingCreate


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


def booking_payload(car_id: int, start: str, end: str, **extra) -> dict:
    payload = {
        "car_id": car_id,
        "start_date": start,
        "end_date": end,
        "pickup_location": "Airport",
        "dropoff_location": "Downtown",
    }
    payload.update(extra)
    return payload


def booking_request(
    car_id: int,
    start: datetime,
    end: datetime,
    addons: Optional[dict] = None,
    pickup: Optional[str] = "Airport",
    dropoff: Optional[str] = "Downtown",
) -> BookingCreate:
    return BookingCreate(
        car_id=car_id,
        start_date=start,
        end_date=end,
        pickup_location=pickup,
        dropoff_location=dropoff,
        additional_services=AdditionalServices(**(addons or {})),
    )
