"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from car_rental.api.routes import bookings, cars

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(cars.router)
api_router.include_router(bookings.router)
