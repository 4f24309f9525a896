"""
Tests for registration endpoints: status codes, error codes and response shapes.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient


def registration_payload(event_id: int, **overrides) -> dict:
    payload = {
        "event_id": event_id,
        "ticket_type": "General",
        "payment_method": "cash_app",
        "user_phone": "+1 555 0100",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_register(client: AsyncClient, auth_headers, make_event, attendees):
    event_id = await make_event(capacity=10, tiers=(("General", "0", 10),))
    attendee = attendees[0]

    response = await client.post(
        "/api/v1/registrations/", json=registration_payload(event_id), headers=auth_headers(attendee)
    )

    assert response.status_code == 201
    data = response.json()
    assert data["event_id"] == event_id
    assert data["user_id"] == attendee.id
    assert data["user_name"] == attendee.name
    assert data["user_phone"] == "+1 555 0100"
    assert data["ticket_type_name"] == "General"
    assert data["payment_status"] == "paid"
    assert "paid_at" in data["payment_details"]

    event = (await client.get(f"/api/v1/events/{event_id}")).json()
    assert event["booked"] == 1
    assert event["ticket_types"][0]["sold"] == 1


@pytest.mark.asyncio
async def test_register_priced_tier_with_details(client: AsyncClient, auth_headers, make_event, attendees):
    event_id = await make_event(tiers=(("VIP", "45.00", 10),))

    response = await client.post(
        "/api/v1/registrations/",
        json=registration_payload(
            event_id,
            ticket_type="VIP",
            payment_method="bank_transfer",
            payment_details={"account_holder_name": "Attendee Zero", "bank_name": "First Bank"},
        ),
        headers=auth_headers(attendees[0]),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["payment_status"] == "pending"
    assert Decimal(data["ticket_price"]) == Decimal("45.00")
    assert data["payment_details"] == {"account_holder_name": "Attendee Zero", "bank_name": "First Bank"}


@pytest.mark.asyncio
async def test_register_unauthenticated(client: AsyncClient, make_event):
    event_id = await make_event()
    response = await client.post("/api/v1/registrations/", json=registration_payload(event_id))
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_register_details_must_match_method(client: AsyncClient, auth_headers, make_event, attendees):
    event_id = await make_event()

    response = await client.post(
        "/api/v1/registrations/",
        json=registration_payload(
            event_id, payment_method="paypal", payment_details={"method": "cash_app", "cash_app_username": "$x"}
        ),
        headers=auth_headers(attendees[0]),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_register_rejects_unknown_payment_method(client: AsyncClient, auth_headers, make_event, attendees):
    event_id = await make_event()

    response = await client.post(
        "/api/v1/registrations/",
        json=registration_payload(event_id, payment_method="bitcoin"),
        headers=auth_headers(attendees[0]),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "event_kwargs,ticket_type,status_code,code",
    [
        ({"status": "cancelled"}, "General", 400, "EVENT_NOT_ACTIVE"),
        ({"days_ahead": -2}, "General", 400, "EVENT_IN_PAST"),
        ({}, "Platinum", 400, "INVALID_TICKET_TYPE"),
        ({"tiers": (("General", "0", 0),)}, "General", 409, "SOLD_OUT"),
    ],
)
async def test_register_error_codes(
    client: AsyncClient, auth_headers, make_event, attendees, event_kwargs, ticket_type, status_code, code
):
    event_id = await make_event(**event_kwargs)

    response = await client.post(
        "/api/v1/registrations/",
        json=registration_payload(event_id, ticket_type=ticket_type),
        headers=auth_headers(attendees[0]),
    )

    assert response.status_code == status_code
    assert response.json()["error"]["code"] == code


@pytest.mark.asyncio
async def test_register_unknown_event(client: AsyncClient, auth_headers, attendees):
    response = await client.post(
        "/api/v1/registrations/", json=registration_payload(99999), headers=auth_headers(attendees[0])
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "EVENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_register_twice(client: AsyncClient, auth_headers, make_event, attendees):
    event_id = await make_event()
    headers = auth_headers(attendees[0])

    first = await client.post("/api/v1/registrations/", json=registration_payload(event_id), headers=headers)
    second = await client.post("/api/v1/registrations/", json=registration_payload(event_id), headers=headers)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "ALREADY_REGISTERED"


@pytest.mark.asyncio
async def test_register_event_full(client: AsyncClient, auth_headers, make_event, register, attendees):
    event_id = await make_event(capacity=1, tiers=(("General", "0", 5),))
    await register(attendees[0], event_id)

    response = await client.post(
        "/api/v1/registrations/", json=registration_payload(event_id), headers=auth_headers(attendees[1])
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "EVENT_FULL"


@pytest.mark.asyncio
async def test_check_registration(client: AsyncClient, auth_headers, make_event, register, attendees):
    event_id = await make_event()
    headers = auth_headers(attendees[0])

    before = await client.get(f"/api/v1/registrations/check/{event_id}", headers=headers)
    assert before.status_code == 200
    assert before.json() == {"is_registered": False, "registration": None}

    registration = await register(attendees[0], event_id)

    after = await client.get(f"/api/v1/registrations/check/{event_id}", headers=headers)
    assert after.json()["is_registered"] is True
    assert after.json()["registration"]["id"] == registration.id


@pytest.mark.asyncio
async def test_cancel_registration(client: AsyncClient, auth_headers, make_event, register, counters, attendees):
    event_id = await make_event()
    registration = await register(attendees[0], event_id)
    headers = auth_headers(attendees[0])

    response = await client.delete(f"/api/v1/registrations/{registration.id}", headers=headers)
    assert response.status_code == 200
    assert response.json() == {
        "message": "Registration cancelled successfully",
        "registration_id": registration.id,
    }
    assert await counters(event_id) == (0, {"General": 0})

    again = await client.delete(f"/api/v1/registrations/{registration.id}", headers=headers)
    assert again.status_code == 404
    assert again.json()["error"]["code"] == "REGISTRATION_NOT_FOUND"


@pytest.mark.asyncio
async def test_cancel_someone_elses_registration(client: AsyncClient, auth_headers, make_event, register, attendees):
    event_id = await make_event()
    registration = await register(attendees[0], event_id)

    response = await client.delete(f"/api/v1/registrations/{registration.id}", headers=auth_headers(attendees[1]))

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_payment_status_flow(client: AsyncClient, auth_headers, make_event, register, organizer, attendees):
    event_id = await make_event(tiers=(("VIP", "45.00", 10),))
    registration = await register(
        attendees[0], event_id, "VIP", payment_details={"cash_app_username": "$attendee0"}
    )
    url = f"/api/v1/registrations/{registration.id}/payment-status"
    headers = auth_headers(organizer)

    paid = await client.put(url, json={"payment_status": "paid", "transaction_id": "TX1"}, headers=headers)
    assert paid.status_code == 200
    details = paid.json()["payment_details"]
    assert paid.json()["payment_status"] == "paid"
    assert details["transaction_id"] == "TX1"
    assert details["cash_app_username"] == "$attendee0"
    assert "paid_at" in details

    refunded = await client.put(url, json={"payment_status": "refunded"}, headers=headers)
    assert refunded.status_code == 200
    assert refunded.json()["payment_status"] == "refunded"

    back = await client.put(url, json={"payment_status": "paid"}, headers=headers)
    assert back.status_code == 409
    assert back.json()["error"]["code"] == "INVALID_TRANSITION"


@pytest.mark.asyncio
async def test_payment_status_forbidden_for_attendee(client: AsyncClient, auth_headers, make_event, register, attendees):
    event_id = await make_event(tiers=(("VIP", "45.00", 10),))
    registration = await register(attendees[0], event_id, "VIP")

    response = await client.put(
        f"/api/v1/registrations/{registration.id}/payment-status",
        json={"payment_status": "paid"},
        headers=auth_headers(attendees[0]),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_my_registrations(client: AsyncClient, auth_headers, make_event, register, attendees):
    attendee = attendees[0]
    for _ in range(3):
        await register(attendee, await make_event())
    await register(attendees[1], await make_event())

    response = await client.get(
        "/api/v1/registrations/my-registrations", params={"limit": 2}, headers=auth_headers(attendee)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["page"] == 1
    assert data["limit"] == 2
    assert data["pages"] == 2
    assert len(data["registrations"]) == 2
    assert all(r["user_id"] == attendee.id for r in data["registrations"])


@pytest.mark.asyncio
async def test_my_registrations_limit_is_capped(client: AsyncClient, auth_headers, attendees):
    response = await client.get(
        "/api/v1/registrations/my-registrations", params={"limit": 51}, headers=auth_headers(attendees[0])
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_event_registrations(client: AsyncClient, auth_headers, make_event, register, organizer, attendees):
    event_id = await make_event()
    for user in attendees[:3]:
        await register(user, event_id)

    as_creator = await client.get(f"/api/v1/registrations/event/{event_id}", headers=auth_headers(organizer))
    assert as_creator.status_code == 200
    assert as_creator.json()["total"] == 3

    as_attendee = await client.get(f"/api/v1/registrations/event/{event_id}", headers=auth_headers(attendees[0]))
    assert as_attendee.status_code == 403
