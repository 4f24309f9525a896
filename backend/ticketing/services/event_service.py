"""
Event service handling catalog CRUD operations.
"""

from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.clock import Clock, ensure_utc
from ticketing.core.errors import EventInPastError, EventNotFoundError, ForbiddenError, InvalidTicketTypeError
from ticketing.core.logging import get_logger
from ticketing.core.security import CurrentUser
from ticketing.models.enums import EventStatus
from ticketing.models.event import Event, TicketType
from ticketing.models.registration import Registration
from ticketing.schemas.event import EventCreate, EventUpdate
from ticketing.services import capacity_ledger, ticket_catalog
from ticketing.services.atomic import run_atomic

logger = get_logger(__name__)


async def create_event(
    db: AsyncSession, event_data: EventCreate, creator: CurrentUser, clock: Clock
) -> Event:
    """Create a new event with every tier and the capacity unbooked."""
    if ensure_utc(event_data.date) <= clock.now():
        raise EventInPastError("Event date must be in the future")

    event = Event(
        title=event_data.title,
        description=event_data.description,
        location=event_data.location,
        category=event_data.category,
        date=ensure_utc(event_data.date),
        image_url=event_data.image_url,
        creator_id=creator.id,
        status=EventStatus.ACTIVE.value,
        capacity=event_data.capacity,
        booked=0,
        payment_methods=[option.model_dump(mode="json") for option in event_data.payment_methods],
        ticket_types=[
            TicketType(
                position=position,
                name=tier.name,
                description=tier.description,
                price=tier.price,
                available=tier.available,
                sold=0,
            )
            for position, tier in enumerate(event_data.ticket_types)
        ],
    )
    db.add(event)
    await db.commit()

    event = await get_event(db, event.id)
    logger.info(
        "event_created",
        event_id=event.id,
        creator_id=creator.id,
        capacity=event.capacity,
        tiers=[tier.name for tier in event.ticket_types],
    )
    return event


async def load_event(db: AsyncSession, event_id: int) -> Optional[Event]:
    """Fresh read of an event and its tiers, bypassing the identity map."""
    result = await db.execute(
        select(Event).where(Event.id == event_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    event = await load_event(db, event_id)
    if not event:
        raise EventNotFoundError(f"Event {event_id} not found")
    return event


def ensure_can_manage(event: Event, user: CurrentUser, action: str) -> None:
    """Only the event's creator or an admin may manage it."""
    if event.creator_id != user.id and not user.is_admin:
        raise ForbiddenError(f"Not authorized to {action} for this event")


async def list_events(
    db: AsyncSession,
    clock: Clock,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    category: Optional[str] = None,
) -> tuple[list[Event], int]:
    """
    List active events with pagination.
    Uses the ix_events_date_status index for the upcoming filter.
    """
    query = select(Event).where(Event.status == EventStatus.ACTIVE.value)

    if upcoming_only:
        query = query.where(Event.date >= clock.now())
    if category:
        query = query.where(Event.category == category)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


EVENT_SCALAR_FIELDS = {"title", "description", "location", "category", "date", "image_url", "status"}
NULLABLE_FIELDS = {"image_url"}


async def update_event(
    db: AsyncSession,
    event_id: int,
    changes: EventUpdate,
    requester: CurrentUser,
    clock: Clock,
) -> Event:
    """
    Apply a partial update (creator/admin only).

    Capacity and tier inventory can only shrink down to what is already
    booked/sold; both are checked by conditional UPDATEs in the same
    transaction as the other field changes, so a rejected resize leaves the
    event untouched.
    """
    event = await get_event(db, event_id)
    ensure_can_manage(event, requester, "update the event")

    if changes.date is not None and ensure_utc(changes.date) <= clock.now():
        raise EventInPastError("Event date must be in the future")

    tier_names = {tier.name for tier in event.ticket_types}
    for tier in changes.ticket_types or []:
        if tier.name not in tier_names:
            raise InvalidTicketTypeError(f"Ticket type '{tier.name}' does not exist for this event")

    values = {
        field: value
        for field, value in changes.model_dump(exclude_unset=True, include=EVENT_SCALAR_FIELDS).items()
        if value is not None or field in NULLABLE_FIELDS
    }
    if "date" in values:
        values["date"] = ensure_utc(values["date"])
    if "status" in values:
        values["status"] = values["status"].value
    if changes.payment_methods is not None:
        values["payment_methods"] = [option.model_dump(mode="json") for option in changes.payment_methods]

    async def commit_update() -> None:
        if values:
            result = await db.execute(
                update(Event)
                .where(Event.id == event_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise EventNotFoundError(f"Event {event_id} not found")

        if changes.capacity is not None:
            await capacity_ledger.resize_capacity(db, event_id, changes.capacity)

        for tier in changes.ticket_types or []:
            if tier.available is not None:
                await ticket_catalog.resize_tier(db, event_id, tier.name, tier.available)
            tier_values = tier.model_dump(exclude_unset=True, include={"price", "description"})
            if tier_values:
                await db.execute(
                    update(TicketType)
                    .where(TicketType.event_id == event_id, TicketType.name == tier.name)
                    .values(**tier_values)
                    .execution_options(synchronize_session=False)
                )

        await db.commit()

    await run_atomic(db, "update_event", commit_update)

    event = await get_event(db, event_id)
    logger.info(
        "event_updated",
        event_id=event_id,
        updated_by=requester.id,
        fields=sorted(changes.model_dump(exclude_unset=True)),
        status=event.status,
    )
    return event


async def delete_event(db: AsyncSession, event_id: int, requester: CurrentUser) -> int:
    """Delete an event with its tiers and registrations (creator/admin only). Returns registrations removed."""
    event = await get_event(db, event_id)
    ensure_can_manage(event, requester, "delete the event")

    async def commit_delete() -> int:
        # Explicit child deletes so the count does not depend on ON DELETE CASCADE
        registrations = await db.execute(
            delete(Registration)
            .where(Registration.event_id == event_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(TicketType)
            .where(TicketType.event_id == event_id)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(
            delete(Event).where(Event.id == event_id).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise EventNotFoundError(f"Event {event_id} not found")
        await db.commit()
        return registrations.rowcount

    removed = await run_atomic(db, "delete_event", commit_delete)
    db.expunge_all()

    logger.info("event_deleted", event_id=event_id, deleted_by=requester.id, registrations_deleted=removed)
    return removed


async def list_user_events(
    db: AsyncSession,
    creator: CurrentUser,
    status: Optional[EventStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Event], int]:
    """Events created by the caller, newest first, optionally filtered by status."""
    query = select(Event).where(Event.creator_id == creator.id)
    if status is not None:
        query = query.where(Event.status == status.value)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(
        query.order_by(Event.created_at.desc(), Event.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total
