"""
In-process lock strategy: one asyncio.Lock per car id.
"""

import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from car_rental.core.exceptions import ConflictError
from car_rental.core.metrics import lock_wait_latency
from car_rental.services.interfaces.car_lock import CarLockStrategy


class LocalCarLock(CarLockStrategy):
    """
    Serializes creations for the same car within this process.

    Use when:
    - A single API process serves all booking writes
    - Tests and development
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        # Locks disappear once no request holds or waits on them
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, car_id: int) -> asyncio.Lock:
        lock = self._locks.get(car_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[car_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, car_id: int) -> AsyncIterator[None]:
        lock = self._lock_for(car_id)
        started = time.perf_counter()
        try:
            async with asyncio.timeout(self.timeout):
                await lock.acquire()
        except TimeoutError:
            raise ConflictError("Car is busy with another booking, please retry")
        lock_wait_latency.observe(time.perf_counter() - started)
        try:
            yield
        finally:
            lock.release()
