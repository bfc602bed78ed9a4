"""
Car catalog service: admin-managed CRUD and the availability flag toggle.
"""

from car_rental.core.exceptions import ConflictError, ForbiddenError
from car_rental.core.identity import Identity
from car_rental.core.logging import get_logger
from car_rental.models.car import Car
from car_rental.repositories.base import UnitOfWork
from car_rental.schemas.car import CarCreate, CarUpdate

logger = get_logger(__name__)

# Fields that identify the vehicle a booking was made for
IDENTIFYING_FIELDS = ("make", "model", "year")


def _require_admin(identity: Identity, action: str) -> None:
    if not identity.can_administer():
        logger.warning("car_admin_denied", user_id=identity.user_id, action=action)
        raise ForbiddenError(f"Not authorized to {action}")


def _column_values(data: dict) -> dict:
    return {field: getattr(value, "value", value) for field, value in data.items()}


async def create_car(uow: UnitOfWork, identity: Identity, car_data: CarCreate) -> Car:
    _require_admin(identity, "add cars")
    car = await uow.cars.add(Car(**_column_values(car_data.model_dump())))
    await uow.commit()
    logger.info("car_created", car_id=car.id, make=car.make, model=car.model)
    return car


async def get_car(uow: UnitOfWork, car_id: int) -> Car:
    return await uow.cars.get(car_id)


async def list_cars(uow: UnitOfWork) -> list[Car]:
    return await uow.cars.list_all()


async def update_car(uow: UnitOfWork, identity: Identity, car_id: int, car_data: CarUpdate) -> Car:
    """
    Apply a partial update.
    Identifying fields cannot change once any booking references the car.
    """
    _require_admin(identity, "update cars")
    car = await uow.cars.get(car_id)
    patch = _column_values(car_data.model_dump(exclude_unset=True))

    changed_identity = [
        field for field in IDENTIFYING_FIELDS
        if field in patch and patch[field] != getattr(car, field)
    ]
    if changed_identity and await uow.bookings.count_for_car(car_id):
        raise ConflictError(
            f"Cannot change {', '.join(changed_identity)} of a car that has bookings"
        )

    car = await uow.cars.update(car_id, patch)
    await uow.commit()
    logger.info("car_updated", car_id=car_id, fields=sorted(patch))
    return car


async def delete_car(uow: UnitOfWork, identity: Identity, car_id: int) -> None:
    _require_admin(identity, "delete cars")
    await uow.cars.get(car_id)
    if await uow.bookings.count_for_car(car_id):
        raise ConflictError("Cannot delete a car that has bookings")
    await uow.cars.delete(car_id)
    await uow.commit()
    logger.info("car_deleted", car_id=car_id)


async def toggle_availability(uow: UnitOfWork, identity: Identity, car_id: int) -> Car:
    _require_admin(identity, "update car availability")
    car = await uow.cars.get(car_id)
    car = await uow.cars.update(car_id, {"available": not car.available})
    await uow.commit()
    logger.info("car_availability_toggled", car_id=car_id, available=car.available)
    return car
