"""
Shared FastAPI dependencies: caller identity and the unit of work.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from car_rental.core.identity import Identity
from car_rental.db.session import get_db
from car_rental.repositories.sql import SqlUnitOfWork
from car_rental.services.interfaces.car_lock import CarLockStrategy
from car_rental.services.strategy_factory import get_car_lock

ADMIN_ROLE = "admin"


async def get_identity(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Identity:
    """
    Identity asserted by the authentication gateway in front of this API.
    Requests without a usable one are rejected.
    """
    if not x_user_id or not x_user_id.strip().isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return Identity(user_id=int(x_user_id), is_admin=(x_user_role or "").lower() == ADMIN_ROLE)


async def get_uow(db: AsyncSession = Depends(get_db)) -> SqlUnitOfWork:
    return SqlUnitOfWork(db)


def get_lock() -> CarLockStrategy:
    return get_car_lock()
