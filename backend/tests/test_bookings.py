"""
Tests for booking creation and owner/admin scoped reads through the API.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from car_rental.core.exceptions import InternalFailureError
from car_rental.services import booking_service
from helpers import booking_payload, booking_request, utc

JUNE_1 = "2024-06-01T00:00:00Z"
JUNE_3 = "2024-06-03T00:00:00Z"
JUNE_4 = "2024-06-04T00:00:00Z"
JUNE_5 = "2024-06-05T00:00:00Z"
JUNE_7 = "2024-06-07T00:00:00Z"


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, user_headers, test_car):
    """New bookings start pending and unpaid with the computed price."""
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_4),
        headers=user_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert data["car_id"] == test_car.id
    assert data["user_id"] == 1
    assert data["status"] == "pending"
    assert data["payment_status"] == "unpaid"
    assert Decimal(data["total_price"]) == Decimal("150")
    assert data["pickup_location"] == "Airport"


@pytest.mark.asyncio
async def test_create_booking_with_addons(client: AsyncClient, user_headers, test_car):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(
            test_car.id, JUNE_1, JUNE_4,
            additional_services={"insurance": True, "gps": True},
        ),
        headers=user_headers,
    )
    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["total_price"]) == Decimal("225")
    assert data["additional_services"]["insurance"] is True
    assert data["additional_services"]["gps"] is True


@pytest.mark.asyncio
async def test_overlapping_booking_conflicts(client: AsyncClient, user_headers, other_user_headers, test_car):
    """Second booking for an overlapping range returns 409."""
    first = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_5),
        headers=user_headers,
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_3, JUNE_7),
        headers=other_user_headers,
    )
    assert second.status_code == 409
    assert second.json() == {"error": "conflict", "detail": "Car not available for selected dates"}


@pytest.mark.asyncio
async def test_back_to_back_bookings_allowed(client: AsyncClient, user_headers, test_car):
    first = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_5),
        headers=user_headers,
    )
    second = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_5, JUNE_7),
        headers=user_headers,
    )
    assert first.status_code == 201
    assert second.status_code == 201


@pytest.mark.asyncio
async def test_book_nonexistent_car(client: AsyncClient, user_headers):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(99999, JUNE_1, JUNE_3),
        headers=user_headers,
    )
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_end_before_start_is_invalid(client: AsyncClient, user_headers, test_car):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_5, JUNE_1),
        headers=user_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


@pytest.mark.asyncio
async def test_malformed_date_is_invalid(client: AsyncClient, user_headers, test_car):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, "not-a-date", JUNE_3),
        headers=user_headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


@pytest.mark.asyncio
async def test_missing_pickup_location_is_invalid(client: AsyncClient, user_headers, test_car):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_3, pickup_location="  "),
        headers=user_headers,
    )
    assert response.status_code == 400
    assert "Pickup location" in response.json()["detail"]


@pytest.mark.asyncio
async def test_invalid_request_writes_nothing(client: AsyncClient, user_headers, admin_headers, test_car):
    await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_5, JUNE_1),
        headers=user_headers,
    )
    response = await client.get("/api/v1/bookings/all", headers=admin_headers)
    assert response.json() == []


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, test_car):
    response = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_3),
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_my_bookings(client: AsyncClient, user_headers, other_user_headers, test_car):
    """Users only see their own bookings."""
    await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_3),
        headers=user_headers,
    )
    await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_5, JUNE_7),
        headers=other_user_headers,
    )

    response = await client.get("/api/v1/bookings/me", headers=user_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["user_id"] == 1


@pytest.mark.asyncio
async def test_list_all_requires_admin(client: AsyncClient, user_headers, admin_headers, test_car):
    await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_3),
        headers=user_headers,
    )

    denied = await client.get("/api/v1/bookings/all", headers=user_headers)
    assert denied.status_code == 403

    allowed = await client.get("/api/v1/bookings/all", headers=admin_headers)
    assert allowed.status_code == 200
    assert len(allowed.json()) == 1


@pytest.mark.asyncio
async def test_get_booking_owner_or_admin(
    client: AsyncClient, user_headers, other_user_headers, admin_headers, test_car
):
    created = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_3),
        headers=user_headers,
    )
    booking_id = created.json()["id"]

    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=user_headers)).status_code == 200
    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=admin_headers)).status_code == 200
    assert (await client.get(f"/api/v1/bookings/{booking_id}", headers=other_user_headers)).status_code == 403
    assert (await client.get("/api/v1/bookings/4242", headers=user_headers)).status_code == 404


@pytest.mark.asyncio
async def test_delete_booking(client: AsyncClient, user_headers, other_user_headers, test_car):
    created = await client.post(
        "/api/v1/bookings/",
        json=booking_payload(test_car.id, JUNE_1, JUNE_3),
        headers=user_headers,
    )
    booking_id = created.json()["id"]

    denied = await client.delete(f"/api/v1/bookings/{booking_id}", headers=other_user_headers)
    assert denied.status_code == 403

    response = await client.delete(f"/api/v1/bookings/{booking_id}", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["booking_id"] == booking_id

    missing = await client.get(f"/api/v1/bookings/{booking_id}", headers=user_headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_malformed_identity_is_unauthenticated(client: AsyncClient):
    response = await client.get("/api/v1/bookings/me", headers={"X-User-Id": "alice"})
    assert response.status_code == 401


def failing(calls):
    async def operation(*args, **kwargs):
        calls.append(args)
        raise OperationalError("INSERT INTO bookings", {}, Exception("disk I/O error"))

    return operation


@pytest.mark.asyncio
async def test_persistence_failure_is_internal_and_not_retried(
    monkeypatch, uow, db_session, car_lock, test_car, user
):
    car_id = test_car.id
    calls = []
    monkeypatch.setattr(db_session, "flush", failing(calls))

    with pytest.raises(InternalFailureError):
        await booking_service.create_booking(
            uow, user, booking_request(car_id, utc(2024, 6, 1), utc(2024, 6, 3)), car_lock
        )
    assert len(calls) == 1

    monkeypatch.undo()
    await uow.rollback()
    assert await uow.bookings.count_for_car(car_id) == 0
    car = await uow.cars.get(car_id)
    assert car.version == 1


@pytest.mark.asyncio
async def test_persistence_failure_renders_500(monkeypatch, client: AsyncClient, db_session, user_headers):
    monkeypatch.setattr(db_session, "execute", failing([]))

    response = await client.get("/api/v1/bookings/me", headers=user_headers)

    assert response.status_code == 500
    assert response.json() == {"error": "internal_failure", "detail": "Persistence layer failure"}
