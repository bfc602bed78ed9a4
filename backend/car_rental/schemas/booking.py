"""
Pydantic schemas for booking-related request/response validation.

Date ordering and location presence are checked by the booking rules, not
here, so they surface as invalid_input errors from the core.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from car_rental.models.enums import BookingStatus, PaymentStatus


class AdditionalServices(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    insurance: bool = False
    child_seat: bool = Field(default=False, alias="childSeat")
    gps: bool = False

    def selected(self) -> dict[str, bool]:
        return {"insurance": self.insurance, "child_seat": self.child_seat, "gps": self.gps}


class BookingCreate(BaseModel):
    car_id: int
    start_date: datetime
    end_date: datetime
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    additional_services: AdditionalServices = Field(default_factory=AdditionalServices)


class BookingResponse(BaseModel):
    id: int
    user_id: int
    car_id: int
    start_date: datetime
    end_date: datetime
    total_price: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    pickup_location: str
    dropoff_location: str
    additional_services: AdditionalServices
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class AvailabilityResponse(BaseModel):
    car_id: int
    start_date: datetime
    end_date: datetime
    available: bool


class BookingDeleteResponse(BaseModel):
    message: str
    booking_id: int
