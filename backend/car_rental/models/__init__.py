from car_rental.models.car import Car
from car_rental.models.booking import Booking

__all__ = ["Car", "Booking"]
