"""
Registration ledger: payment-status state machine and registration queries.

PAYMENT STATE MACHINE
=====================

  pending --> paid --> refunded
     |                    ^
     +--------------------+

- Initial state is `paid` for free tickets (price == 0), `pending` otherwise
- `refunded` is terminal
- Anything not listed in ALLOWED_TRANSITIONS (including X -> X) is rejected
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.errors import InvalidTransitionError
from ticketing.models.enums import PaymentStatus
from ticketing.models.registration import Registration

ALLOWED_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.PAID, PaymentStatus.REFUNDED}),
    PaymentStatus.PAID: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}


def initial_payment_status(price: Decimal) -> PaymentStatus:
    return PaymentStatus.PENDING if price > 0 else PaymentStatus.PAID


def can_transition(current: PaymentStatus, new: PaymentStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def check_transition(current: PaymentStatus, new: PaymentStatus) -> None:
    if not can_transition(current, new):
        raise InvalidTransitionError(
            f"Cannot change payment status from '{current.value}' to '{new.value}'"
        )


def merge_payment_details(
    existing: Optional[dict],
    new_status: PaymentStatus,
    now: datetime,
    transaction_id: Optional[str] = None,
    payment_reference: Optional[str] = None,
) -> dict:
    """Return a new details dict; keys not being set are carried over untouched."""
    details = dict(existing or {})
    if new_status == PaymentStatus.PAID:
        details["paid_at"] = now.isoformat()
    if transaction_id:
        details["transaction_id"] = transaction_id
    if payment_reference:
        details["payment_reference"] = payment_reference
    return details


async def find_registration(db: AsyncSession, registration_id: int) -> Optional[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_user_registration(
    db: AsyncSession, event_id: int, user_id: int
) -> Optional[Registration]:
    result = await db.execute(
        select(Registration)
        .where(Registration.event_id == event_id, Registration.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_registrations(
    db: AsyncSession,
    *,
    event_id: Optional[int] = None,
    user_id: Optional[int] = None,
    payment_status: Optional[PaymentStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Registration], int]:
    """Filtered registrations, newest first, with the unpaginated total."""
    query = select(Registration)
    if event_id is not None:
        query = query.where(Registration.event_id == event_id)
    if user_id is not None:
        query = query.where(Registration.user_id == user_id)
    if payment_status is not None:
        query = query.where(Registration.payment_status == payment_status.value)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(
        query.order_by(Registration.created_at.desc(), Registration.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return list(result.scalars().all()), total


async def all_event_registrations(db: AsyncSession, event_id: int) -> list[Registration]:
    result = await db.execute(select(Registration).where(Registration.event_id == event_id))
    return list(result.scalars().all())
