"""
Pytest fixtures for test database, client, clock and authentication.

Uses a SQLite file per test (aiosqlite) so that concurrent sessions really
contend for the same rows. Set TEST_DATABASE_URL to run against Postgres.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from ticketing.main import app
from ticketing.db.base import Base
from ticketing.db.session import get_db
from ticketing.core.clock import FixedClock, get_clock
from ticketing.core.security import CurrentUser, ROLE_ADMIN, create_access_token
from ticketing.models.event import Event, TicketType
from ticketing.schemas.registration import RegistrationCreate
from ticketing.services.event_service import load_event
from ticketing.services.registration_service import register_for_event

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def database_url(tmp_path) -> str:
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'ticketing_test.db'}"


@pytest_asyncio.fixture
async def engine(database_url: str):
    """Create tables, yield engine, then drop tables for isolation."""
    test_engine = create_async_engine(database_url, echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest_asyncio.fixture
async def client(session_factory, clock) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh session per request and a frozen clock."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# Identities (issued by the external identity service in production)

@pytest.fixture
def organizer() -> CurrentUser:
    return CurrentUser(id=1, name="Olivia Organizer", email="olivia@example.com")


@pytest.fixture
def admin() -> CurrentUser:
    return CurrentUser(id=99, name="Ada Admin", email="ada@example.com", role=ROLE_ADMIN)


@pytest.fixture
def attendees() -> list[CurrentUser]:
    return [
        CurrentUser(id=100 + i, name=f"Attendee {i}", email=f"attendee{i}@example.com")
        for i in range(20)
    ]


def headers_for(user: CurrentUser) -> dict:
    token = create_access_token(
        data={"sub": str(user.id), "name": user.name, "email": user.email, "role": user.role}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    """Build bearer headers for any CurrentUser."""
    return headers_for


# Data helpers

@pytest.fixture
def make_event(session_factory, clock, organizer):
    """Insert an event directly; returns its id."""

    async def _make(
        capacity: int = 100,
        tiers=(("General", "0", 100),),
        status: str = "active",
        days_ahead: int = 30,
        creator_id: int | None = None,
    ) -> int:
        async with session_factory() as session:
            event = Event(
                title="Test Concert",
                description="A test event with ticket tiers",
                location="Test Venue",
                category="Music",
                date=clock.now() + timedelta(days=days_ahead),
                creator_id=creator_id or organizer.id,
                status=status,
                capacity=capacity,
                booked=0,
                payment_methods=[{"type": "cash_app", "details": {"username": "$olivia"}}],
                ticket_types=[
                    TicketType(position=i, name=name, price=Decimal(price), available=available, sold=0)
                    for i, (name, price, available) in enumerate(tiers)
                ],
            )
            session.add(event)
            await session.commit()
            return event.id

    return _make


@pytest.fixture
def counters(session_factory):
    """Read (booked, {tier: sold}) for an event in a fresh session."""

    async def _counters(event_id: int) -> tuple[int, dict[str, int]]:
        async with session_factory() as session:
            event = await load_event(session, event_id)
            return event.booked, {tier.name: tier.sold for tier in event.ticket_types}

    return _counters


@pytest.fixture
def register(session_factory, clock):
    """Call the registration service in its own session, like one request."""

    async def _register(
        user: CurrentUser,
        event_id: int,
        ticket_type: str = "General",
        payment_method: str = "cash_app",
        payment_details: dict | None = None,
    ):
        data = RegistrationCreate(
            event_id=event_id,
            ticket_type=ticket_type,
            payment_method=payment_method,
            payment_details=payment_details,
        )
        async with session_factory() as session:
            return await register_for_event(session, user, data, clock)

    return _register
