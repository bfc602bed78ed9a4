"""
Persistence layer: repository interfaces and their SQLAlchemy implementations.
"""

from .base import BookingRepository, CarRepository, UnitOfWork
from .sql import SqlBookingRepository, SqlCarRepository, SqlUnitOfWork

__all__ = [
    'BookingRepository', 'CarRepository', 'UnitOfWork',
    'SqlBookingRepository', 'SqlCarRepository', 'SqlUnitOfWork',
]
