"""
Redis-backed per-car lock for deployments with several API processes.
Implements CarLockStrategy using redis-py's async Lock.

Circuit Breaker Pattern:
  On Redis failure, the lock "fails open" to an in-process lock.
  Database remains authoritative: the car version bump in the creation
  transaction still prevents two overlapping bookings from committing.
"""

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from redis.exceptions import RedisError

from car_rental.core.config import get_settings
from car_rental.core.exceptions import ConflictError
from car_rental.core.logging import get_logger
from car_rental.core.metrics import lock_wait_latency, redis_connection_errors
from car_rental.infrastructure.redis_client import get_redis
from car_rental.services.interfaces.car_lock import CarLockStrategy
from car_rental.services.interfaces.local_lock import LocalCarLock

logger = get_logger(__name__)
settings = get_settings()


class RedisCarLock(CarLockStrategy):
    """
    Redis-based per-car lock.

    Key: "car-lock:{car_id}", expiring after BOOKING_LOCK_TIMEOUT so a crashed
    holder cannot block the car forever.
    """

    def __init__(self, timeout: float = None):
        self.timeout = timeout or settings.BOOKING_LOCK_TIMEOUT
        self._fallback = LocalCarLock(timeout=self.timeout)

    @asynccontextmanager
    async def hold(self, car_id: int) -> AsyncIterator[None]:
        client = await get_redis()
        if client is None:
            async with self._fallback.hold(car_id):
                yield
            return

        lock = client.lock(
            f"car-lock:{car_id}",
            timeout=self.timeout,
            blocking_timeout=self.timeout,
        )
        started = time.perf_counter()
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            # Circuit breaker: fail open to the in-process lock
            redis_connection_errors.inc()
            logger.warning("car_lock_redis_unavailable", car_id=car_id, error=str(e))
            async with self._fallback.hold(car_id):
                yield
            return

        if not acquired:
            raise ConflictError("Car is busy with another booking, please retry")
        lock_wait_latency.observe(time.perf_counter() - started)

        try:
            yield
        finally:
            try:
                await lock.release()
            except RedisError as e:
                # Lock expired or Redis went away; the key times out on its own
                logger.warning("car_lock_release_failed", car_id=car_id, error=str(e))
