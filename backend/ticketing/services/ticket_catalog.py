"""
Ticket catalog: per-tier inventory for an event.

Reads answer "does tier X have a unit free?" from a loaded Event. Writes are
single conditional UPDATE statements, so the `sold < available` check and
the increment happen in one indivisible step in the database:

  UPDATE ticket_types SET sold = sold + 1
  WHERE event_id = :event_id AND name = :name AND sold < available

rowcount == 0 means another transaction took the last unit between our read
and our write. The caller's transaction decides whether to commit.
"""

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.errors import (
    InvalidTicketTypeError,
    InventoryBelowSoldError,
    InvariantViolationError,
    SoldOutError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import invariant_violations
from ticketing.models.event import Event, TicketType

logger = get_logger(__name__)


def find_tier(event: Event, name: str) -> TicketType:
    for tier in event.ticket_types:
        if tier.name == name:
            return tier
    raise InvalidTicketTypeError(f"Ticket type '{name}' does not exist for this event")


def has_free_unit(tier: TicketType) -> bool:
    return tier.sold < tier.available


async def reserve_ticket(db: AsyncSession, event_id: int, tier_name: str) -> None:
    """Take one unit of a tier, or raise SoldOutError if none is left."""
    result = await db.execute(
        update(TicketType)
        .where(
            TicketType.event_id == event_id,
            TicketType.name == tier_name,
            TicketType.sold < TicketType.available,
        )
        .values(sold=TicketType.sold + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("ticket_reserve_rejected", event_id=event_id, ticket_type=tier_name)
        raise SoldOutError()


async def release_ticket(db: AsyncSession, event_id: int, tier_name: str) -> None:
    """Give one unit of a tier back. Never lets `sold` go negative."""
    result = await db.execute(
        update(TicketType)
        .where(
            TicketType.event_id == event_id,
            TicketType.name == tier_name,
            TicketType.sold > 0,
        )
        .values(sold=TicketType.sold - 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        invariant_violations.labels(counter="ticket_sold").inc()
        logger.error(
            "invariant_violation",
            counter="ticket_sold",
            event_id=event_id,
            ticket_type=tier_name,
            reason="release would make sold negative or tier is missing",
        )
        raise InvariantViolationError(
            f"Cannot release ticket type '{tier_name}' for event {event_id}"
        )


async def resize_tier(db: AsyncSession, event_id: int, tier_name: str, available: int) -> None:
    """Set a tier's `available`, or raise InventoryBelowSoldError if it would drop below `sold`."""
    result = await db.execute(
        update(TicketType)
        .where(
            TicketType.event_id == event_id,
            TicketType.name == tier_name,
            TicketType.sold <= available,
        )
        .values(available=available)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        logger.info("ticket_resize_rejected", event_id=event_id, ticket_type=tier_name, available=available)
        raise InventoryBelowSoldError(
            f"Ticket type '{tier_name}' cannot offer fewer tickets than it has sold"
        )
