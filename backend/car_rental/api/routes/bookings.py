"""
Booking endpoints: availability check, creation and lifecycle transitions.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from car_rental.api.deps import get_identity, get_lock, get_uow
from car_rental.core.identity import Identity
from car_rental.repositories.base import UnitOfWork
from car_rental.schemas.booking import (
    AvailabilityResponse,
    BookingCreate,
    BookingDeleteResponse,
    BookingResponse,
    BookingStatusUpdate,
    PaymentStatusUpdate,
)
from car_rental.services import booking_service
from car_rental.services.availability_service import is_available
from car_rental.services.interfaces.car_lock import CarLockStrategy

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.get("/check-availability", response_model=AvailabilityResponse)
async def check_availability(
    car_id: int = Query(...),
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    uow: UnitOfWork = Depends(get_uow),
):
    """Whether the car has no pending/confirmed booking overlapping [start_date, end_date)."""
    available = await is_available(uow, car_id, start_date, end_date)
    return AvailabilityResponse(
        car_id=car_id,
        start_date=start_date,
        end_date=end_date,
        available=available,
    )


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
    lock: CarLockStrategy = Depends(get_lock),
):
    """
    Book a car for a date range.

    The price is computed from the car's daily price and the selected
    add-ons. Returns 409 if the car is already booked for an overlapping range.
    """
    return await booking_service.create_booking(uow, identity, booking_data, lock)


@router.get("/me", response_model=list[BookingResponse])
async def list_my_bookings(
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    return await booking_service.list_user_bookings(uow, identity)


@router.get("/all", response_model=list[BookingResponse])
async def list_all_bookings(
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    """All bookings. Admin only."""
    return await booking_service.list_all_bookings(uow, identity)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    return await booking_service.get_booking(uow, identity, booking_id)


@router.put("/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    update: BookingStatusUpdate,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    return await booking_service.update_booking_status(uow, identity, booking_id, update.status)


@router.put("/{booking_id}/payment", response_model=BookingResponse)
async def update_payment_status(
    booking_id: int,
    update: PaymentStatusUpdate,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    """Change the payment status. Admin only."""
    return await booking_service.update_payment_status(
        uow, identity, booking_id, update.payment_status
    )


@router.delete("/{booking_id}", response_model=BookingDeleteResponse)
async def delete_booking(
    booking_id: int,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    await booking_service.delete_booking(uow, identity, booking_id)
    return BookingDeleteResponse(message="Booking deleted", booking_id=booking_id)
