"""
Capacity ledger: the event-level `booked` aggregate.

Same conditional-update discipline as the ticket catalog. The increment is
guarded by `booked < capacity`; the decrement is floored at zero.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.errors import EventFullError, InventoryBelowSoldError
from ticketing.core.logging import get_logger
from ticketing.core.metrics import invariant_violations
from ticketing.models.event import Event

logger = get_logger(__name__)


def has_capacity(event: Event) -> bool:
    return event.booked < event.capacity


async def reserve_capacity(db: AsyncSession, event_id: int) -> None:
    """Take one unit of event capacity, or raise EventFullError."""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.booked < Event.capacity)
        .values(booked=Event.booked + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("capacity_reserve_rejected", event_id=event_id)
        raise EventFullError()


async def release_capacity(db: AsyncSession, event_id: int) -> None:
    """Give one unit of capacity back, floored at zero."""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.booked > 0)
        .values(booked=Event.booked - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # Already at zero: nothing to release. Counters have drifted somewhere.
        invariant_violations.labels(counter="event_booked").inc()
        logger.warning("capacity_release_floored", event_id=event_id)


async def resize_capacity(db: AsyncSession, event_id: int, capacity: int) -> None:
    """Set a new capacity, or raise InventoryBelowSoldError if it would drop below `booked`."""
    result = await db.execute(
        update(Event)
        .where(Event.id == event_id, Event.booked <= capacity)
        .values(capacity=capacity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("capacity_resize_rejected", event_id=event_id, capacity=capacity)
        raise InventoryBelowSoldError("Capacity cannot be lower than the number of registrations")
