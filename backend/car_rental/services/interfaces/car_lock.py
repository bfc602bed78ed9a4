"""
Per-car lock strategy interface.
Allows swapping between in-process and cross-process serialization of
booking creation.
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager


class CarLockStrategy(ABC):
    """
    Interface for per-car mutual exclusion around booking creation.

    Implementations:
    - LocalCarLock: asyncio.Lock per car, one process
    - RedisCarLock: Redis lock per car, all processes sharing the Redis

    The car version bump inside the creation transaction stays authoritative;
    a lock only keeps concurrent creations from racing into retries.
    """

    @abstractmethod
    def hold(self, car_id: int) -> AsyncContextManager[None]:
        """
        Hold the lock for `car_id` for the duration of the `async with` block.

        Raises:
            ConflictError if the lock cannot be obtained in time
        """
        pass
