"""
Concurrency tests: simultaneous creations for the same car and range must
produce exactly one booking.
"""

import asyncio
from decimal import Decimal

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import func, select

from car_rental.core.exceptions import ConflictError
from car_rental.core.identity import Identity
from car_rental.models.booking import Booking
from car_rental.models.car import Car
from car_rental.repositories.sql import SqlUnitOfWork
from car_rental.services.booking_service import create_booking
from car_rental.services.interfaces.local_lock import LocalCarLock
from car_rental.services.lock_service import RedisCarLock
from car_rental.services.strategy_factory import get_car_lock_strategy
from helpers import booking_request, utc


async def attempt(session_factory, lock, user_id, car_id, start, end):
    async with session_factory() as session:
        uow = SqlUnitOfWork(session)
        return await create_booking(
            uow, Identity(user_id=user_id), booking_request(car_id, start, end), lock
        )


async def count_bookings(session_factory, car_id) -> int:
    async with session_factory() as session:
        result = await session.execute(
            select(func.count()).select_from(Booking).where(Booking.car_id == car_id)
        )
        return result.scalar_one()


@pytest.mark.asyncio
async def test_concurrent_overlapping_creations_one_wins(session_factory, test_car):
    lock = LocalCarLock(timeout=5)

    results = await asyncio.gather(
        attempt(session_factory, lock, 1, test_car.id, utc(2024, 6, 1), utc(2024, 6, 5)),
        attempt(session_factory, lock, 2, test_car.id, utc(2024, 6, 3), utc(2024, 6, 7)),
        attempt(session_factory, lock, 3, test_car.id, utc(2024, 6, 2), utc(2024, 6, 4)),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, Booking)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == 2
    assert await count_bookings(session_factory, test_car.id) == 1


@pytest.mark.asyncio
async def test_concurrent_disjoint_creations_all_succeed(session_factory, test_car):
    lock = LocalCarLock(timeout=5)

    results = await asyncio.gather(
        attempt(session_factory, lock, 1, test_car.id, utc(2024, 6, 1), utc(2024, 6, 3)),
        attempt(session_factory, lock, 2, test_car.id, utc(2024, 6, 3), utc(2024, 6, 5)),
        attempt(session_factory, lock, 3, test_car.id, utc(2024, 6, 5), utc(2024, 6, 7)),
        return_exceptions=True,
    )

    assert all(isinstance(r, Booking) for r in results)
    assert await count_bookings(session_factory, test_car.id) == 3


@pytest.mark.asyncio
async def test_each_creation_bumps_car_version(session_factory, test_car):
    lock = LocalCarLock(timeout=5)
    await attempt(session_factory, lock, 1, test_car.id, utc(2024, 6, 1), utc(2024, 6, 3))
    await attempt(session_factory, lock, 1, test_car.id, utc(2024, 6, 3), utc(2024, 6, 5))

    async with session_factory() as session:
        car = await session.get(Car, test_car.id)
        assert car.version == 3


@pytest.mark.asyncio
async def test_stale_version_claim_fails(uow, test_car):
    assert await uow.cars.claim(test_car.id, 1)
    assert not await uow.cars.claim(test_car.id, 1)


@pytest.mark.asyncio
async def test_redis_lock_falls_back_without_redis(session_factory, test_car):
    """With Redis disabled the Redis strategy still serializes in-process."""
    lock = RedisCarLock(timeout=5)

    results = await asyncio.gather(
        attempt(session_factory, lock, 1, test_car.id, utc(2024, 6, 1), utc(2024, 6, 5)),
        attempt(session_factory, lock, 2, test_car.id, utc(2024, 6, 1), utc(2024, 6, 5)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, Booking) for r in results) == 1
    assert sum(isinstance(r, ConflictError) for r in results) == 1


@pytest.mark.asyncio
async def test_local_lock_times_out_with_conflict():
    lock = LocalCarLock(timeout=0.05)

    async with lock.hold(7):
        with pytest.raises(ConflictError):
            async with lock.hold(7):
                pass

    # Other cars are unaffected and the lock is reusable once released
    async with lock.hold(8):
        pass
    async with lock.hold(7):
        pass


def test_default_lock_strategy_is_local():
    assert isinstance(get_car_lock_strategy(), LocalCarLock)


def fail_claims(monkeypatch, uow, failures):
    """Make the first `failures` version claims lose to a competing writer."""
    real_claim = uow.cars.claim
    calls = {"n": 0}

    async def claim(car_id, expected_version):
        calls["n"] += 1
        if calls["n"] <= failures:
            return False
        return await real_claim(car_id, expected_version)

    monkeypatch.setattr(uow.cars, "claim", claim)
    return calls


@pytest.mark.asyncio
async def test_lost_version_claim_retries_and_books(monkeypatch, uow, car_lock, test_car, user):
    car_id = test_car.id
    calls = fail_claims(monkeypatch, uow, failures=1)
    retries_before = REGISTRY.get_sample_value("db_retry_attempts_total", {"operation": "create"}) or 0

    booking = await create_booking(
        uow, user, booking_request(car_id, utc(2024, 6, 1), utc(2024, 6, 5)), car_lock
    )

    assert calls["n"] == 2
    assert booking.status == "pending"
    assert booking.total_price == Decimal("200.00")
    assert REGISTRY.get_sample_value("db_retry_attempts_total", {"operation": "create"}) == retries_before + 1

    car = await uow.cars.get(car_id)
    assert car.version == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retries", [0, 1, 2])
async def test_exhausted_claim_retries_conflict(
    monkeypatch, session_factory, uow, car_lock, test_car, user, max_retries
):
    car_id = test_car.id
    calls = fail_claims(monkeypatch, uow, failures=10)

    with pytest.raises(ConflictError, match="high demand"):
        await create_booking(
            uow,
            user,
            booking_request(car_id, utc(2024, 6, 1), utc(2024, 6, 5)),
            car_lock,
            max_retries=max_retries,
        )

    assert calls["n"] == max_retries
    assert await count_bookings(session_factory, car_id) == 0


@pytest.mark.asyncio
async def test_lock_released_as_waiter_times_out_stays_usable():
    lock = LocalCarLock(timeout=0.05)
    holding = asyncio.Event()

    async def holder():
        async with lock.hold(7):
            holding.set()
            await asyncio.sleep(0.05)

    task = asyncio.create_task(holder())
    await holding.wait()
    # Released at about the moment the waiter gives up; either outcome is fine
    try:
        async with lock.hold(7):
            pass
    except ConflictError:
        pass
    await task

    # A leaked acquisition would make this time out
    async with lock.hold(7):
        pass
