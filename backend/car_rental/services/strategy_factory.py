"""
Car lock strategy factory.
Configures which per-car lock guards booking creation.
"""

from typing import Optional

from car_rental.core.config import get_settings
from car_rental.services.interfaces.car_lock import CarLockStrategy
from car_rental.services.interfaces.local_lock import LocalCarLock
from car_rental.services.lock_service import RedisCarLock


def get_car_lock_strategy() -> CarLockStrategy:
    """
    Build the configured lock strategy.

    - local: LocalCarLock (single process)
    - redis: RedisCarLock (several processes sharing one Redis)

    Selected via the BOOKING_LOCK_STRATEGY env var.
    """
    settings = get_settings()
    if settings.BOOKING_LOCK_STRATEGY == "redis":
        return RedisCarLock(timeout=settings.BOOKING_LOCK_TIMEOUT)
    return LocalCarLock(timeout=settings.BOOKING_LOCK_TIMEOUT)


# Singleton instance
_strategy: Optional[CarLockStrategy] = None


def get_car_lock() -> CarLockStrategy:
    """Get car lock strategy singleton."""
    global _strategy
    if _strategy is None:
        _strategy = get_car_lock_strategy()
    return _strategy
