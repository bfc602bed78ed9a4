"""
Pytest fixtures for test database, client, and caller identities.

Uses a fresh schema per test for isolation. The database defaults to an
in-memory SQLite (aiosqlite); point TEST_DATABASE_URL at PostgreSQL
(postgresql+asyncpg://...) to run the same suite against the real backend.
"""

import os

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("REDIS_ENABLED", "false")

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from car_rental.main import app
from car_rental.api.deps import get_lock
from car_rental.core.identity import Identity
from car_rental.db.base import Base
from car_rental.db.session import get_db
from car_rental.models.car import Car
from car_rental.repositories.sql import SqlUnitOfWork
from car_rental.services.interfaces.local_lock import LocalCarLock

USER_ID = 1
OTHER_USER_ID = 2
ADMIN_ID = 99


@pytest_asyncio.fixture(scope="function")
async def engine():
    """Create tables, yield the engine, then drop tables for isolation."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # One shared connection so every session sees the same in-memory database
        test_engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    else:
        test_engine = create_async_engine(TEST_DATABASE_URL)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def uow(db_session: AsyncSession) -> SqlUnitOfWork:
    return SqlUnitOfWork(db_session)


@pytest.fixture
def car_lock() -> LocalCarLock:
    return LocalCarLock(timeout=5)


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, car_lock: LocalCarLock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB and lock dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock] = lambda: car_lock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user() -> Identity:
    return Identity(user_id=USER_ID)


@pytest.fixture
def other_user() -> Identity:
    return Identity(user_id=OTHER_USER_ID)


@pytest.fixture
def admin() -> Identity:
    return Identity(user_id=ADMIN_ID, is_admin=True)


@pytest.fixture
def user_headers() -> dict:
    return {"X-User-Id": str(USER_ID)}


@pytest.fixture
def other_user_headers() -> dict:
    return {"X-User-Id": str(OTHER_USER_ID)}


@pytest.fixture
def admin_headers() -> dict:
    return {"X-User-Id": str(ADMIN_ID), "X-User-Role": "admin"}


@pytest_asyncio.fixture
async def test_car(db_session: AsyncSession) -> Car:
    """A $50/day car with no bookings."""
    car = Car(
        make="Toyota",
        model="Corolla",
        year=2022,
        daily_price=Decimal("50.00"),
        seats=5,
        transmission="automatic",
        fuel_type="petrol",
        available=True,
        description="Compact sedan",
    )
    db_session.add(car)
    await db_session.commit()
    await db_session.refresh(car)
    return car
