"""
Pydantic schemas for car catalog request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from car_rental.models.enums import FuelType, Transmission


class CarCreate(BaseModel):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=2099)
    daily_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    seats: int = Field(..., ge=1, le=10)
    transmission: Transmission
    fuel_type: FuelType
    available: bool = True
    image_url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None


class CarUpdate(BaseModel):
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2099)
    daily_price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    seats: Optional[int] = Field(None, ge=1, le=10)
    transmission: Optional[Transmission] = None
    fuel_type: Optional[FuelType] = None
    available: Optional[bool] = None
    image_url: Optional[str] = Field(None, max_length=500)
    description: Optional[str] = None

    @field_validator(
        "make", "model", "year", "daily_price", "seats", "transmission", "fuel_type", "available",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value, info):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class CarResponse(BaseModel):
    id: int
    make: str
    model: str
    year: int
    daily_price: Decimal
    seats: int
    transmission: Transmission
    fuel_type: FuelType
    available: bool
    image_url: Optional[str]
    description: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class CarListResponse(BaseModel):
    cars: list[CarResponse]
    total: int
    cached: bool = False
