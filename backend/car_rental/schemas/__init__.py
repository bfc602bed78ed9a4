from car_rental.schemas.car import CarCreate, CarUpdate, CarResponse, CarListResponse
from car_rental.schemas.booking import (
    AdditionalServices,
    AvailabilityResponse,
    BookingCreate,
    BookingDeleteResponse,
    BookingResponse,
    BookingStatusUpdate,
    PaymentStatusUpdate,
)

__all__ = [
    "CarCreate", "CarUpdate", "CarResponse", "CarListResponse",
    "AdditionalServices", "AvailabilityResponse", "BookingCreate", "BookingDeleteResponse",
    "BookingResponse", "BookingStatusUpdate", "PaymentStatusUpdate",
]
