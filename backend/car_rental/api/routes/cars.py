"""
Car catalog endpoints with Redis caching on the listing.
"""

from fastapi import APIRouter, Depends, status

from car_rental.api.deps import get_identity, get_uow
from car_rental.core.identity import Identity
from car_rental.core.logging import get_logger
from car_rental.repositories.base import UnitOfWork
from car_rental.schemas.car import CarCreate, CarListResponse, CarResponse, CarUpdate
from car_rental.services import car_service
from car_rental.services.cache_service import get_cached_cars, invalidate_car_cache, set_cached_cars

logger = get_logger(__name__)
router = APIRouter(prefix="/cars", tags=["Cars"])


@router.get("/", response_model=CarListResponse)
async def list_cars_endpoint(uow: UnitOfWork = Depends(get_uow)):
    """List the catalog. Cached in Redis until the next catalog change."""
    cached = await get_cached_cars()
    if cached:
        logger.info("cars_list_cache_hit")
        cached["cached"] = True
        return CarListResponse(**cached)

    cars = await car_service.list_cars(uow)
    response_data = {
        "cars": [CarResponse.model_validate(c).model_dump(mode="json") for c in cars],
        "total": len(cars),
        "cached": False,
    }
    await set_cached_cars(response_data)
    return CarListResponse(**response_data)


@router.get("/{car_id}", response_model=CarResponse)
async def get_car_endpoint(car_id: int, uow: UnitOfWork = Depends(get_uow)):
    return await car_service.get_car(uow, car_id)


@router.post("/", response_model=CarResponse, status_code=status.HTTP_201_CREATED)
async def create_car_endpoint(
    car_data: CarCreate,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    """Add a car to the catalog. Admin only."""
    car = await car_service.create_car(uow, identity, car_data)
    await invalidate_car_cache()
    return car


@router.put("/{car_id}", response_model=CarResponse)
async def update_car_endpoint(
    car_id: int,
    car_data: CarUpdate,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    car = await car_service.update_car(uow, identity, car_id, car_data)
    await invalidate_car_cache()
    return car


@router.delete("/{car_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_car_endpoint(
    car_id: int,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    await car_service.delete_car(uow, identity, car_id)
    await invalidate_car_cache()


@router.patch("/{car_id}/toggle-availability", response_model=CarResponse)
async def toggle_availability_endpoint(
    car_id: int,
    identity: Identity = Depends(get_identity),
    uow: UnitOfWork = Depends(get_uow),
):
    """Flip whether the car is offered at all. Does not affect existing bookings."""
    car = await car_service.toggle_availability(uow, identity, car_id)
    await invalidate_car_cache()
    return car
