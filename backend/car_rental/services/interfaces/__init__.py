"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .car_lock import CarLockStrategy
from .local_lock import LocalCarLock

__all__ = ['CarLockStrategy', 'LocalCarLock']
