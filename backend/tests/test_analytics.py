"""
Tests for the per-event analytics projection.
"""

import warnings
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import inspect

from ticketing.core.errors import EventNotFoundError, ForbiddenError
from ticketing.models.event import Event
from ticketing.models.registration import Registration
from ticketing.services.analytics_service import get_event_analytics, project_analytics

BASE = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def make_registration(i: int, tier: str, price: str, status: str, method: str = "cash_app") -> Registration:
    return Registration(
        id=i,
        event_id=1,
        user_id=100 + i,
        user_name=f"User {i}",
        user_email=f"user{i}@example.com",
        ticket_type_name=tier,
        ticket_price=Decimal(price),
        payment_method=method,
        payment_status=status,
        payment_details={},
        created_at=BASE + timedelta(minutes=i),
    )


def test_registrations_are_plain_rows():
    """Registrations are only loaded by query; building one must not touch any relationship loader."""
    assert "registrations" not in inspect(Event).relationships
    assert list(inspect(Registration).relationships) == []

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        registration = make_registration(1, "General", "0", "paid")

    assert registration.event_id == 1


class TestProjectAnalytics:
    def test_zero_registrations(self):
        analytics = project_analytics(1, [])

        assert analytics.total_registrations == 0
        assert analytics.total_revenue == Decimal("0")
        assert analytics.payment_status_breakdown == {"pending": 0, "paid": 0, "refunded": 0}
        assert analytics.ticket_type_breakdown == {}
        assert analytics.payment_method_breakdown == {}
        assert analytics.recent_registrations == []

    def test_revenue_counts_only_paid(self):
        registrations = [
            make_registration(1, "VIP", "50.00", "paid"),
            make_registration(2, "VIP", "50.00", "pending"),
            make_registration(3, "General", "20.00", "paid", method="paypal"),
            make_registration(4, "General", "20.00", "refunded", method="bank_transfer"),
            make_registration(5, "Free", "0.00", "paid"),
        ]

        analytics = project_analytics(1, registrations)

        assert analytics.total_registrations == 5
        assert analytics.total_revenue == Decimal("70.00")
        assert analytics.payment_status_breakdown == {"pending": 1, "paid": 3, "refunded": 1}
        assert analytics.ticket_type_breakdown == {"VIP": 2, "General": 2, "Free": 1}
        assert analytics.payment_method_breakdown == {"cash_app": 3, "paypal": 1, "bank_transfer": 1}

    def test_recent_registrations_newest_first_and_limited(self):
        registrations = [make_registration(i, "General", "0", "paid") for i in range(1, 16)]

        analytics = project_analytics(1, registrations, recent_limit=10)

        assert len(analytics.recent_registrations) == 10
        assert analytics.recent_registrations[0].user_name == "User 15"
        assert analytics.recent_registrations[-1].user_name == "User 6"


@pytest.mark.asyncio
async def test_creator_sees_analytics(db_session, make_event, register, attendees, organizer):
    event_id = await make_event(tiers=(("VIP", "50.00", 5), ("General", "0", 5)))
    await register(attendees[0], event_id, "VIP", payment_details={"cash_app_username": "$a0"})
    await register(attendees[1], event_id, "General")

    analytics = await get_event_analytics(db_session, event_id, organizer)

    assert analytics.total_registrations == 2
    # VIP is still pending, General is free and auto-paid
    assert analytics.total_revenue == Decimal("0")
    assert analytics.payment_status_breakdown == {"pending": 1, "paid": 1, "refunded": 0}
    assert analytics.ticket_type_breakdown == {"VIP": 1, "General": 1}


@pytest.mark.asyncio
async def test_admin_sees_analytics(db_session, make_event, admin):
    event_id = await make_event()
    analytics = await get_event_analytics(db_session, event_id, admin)
    assert analytics.total_registrations == 0


@pytest.mark.asyncio
async def test_other_user_is_forbidden(db_session, make_event, attendees):
    event_id = await make_event()
    with pytest.raises(ForbiddenError):
        await get_event_analytics(db_session, event_id, attendees[0])


@pytest.mark.asyncio
async def test_unknown_event(db_session, organizer):
    with pytest.raises(EventNotFoundError):
        await get_event_analytics(db_session, 999_999, organizer)
