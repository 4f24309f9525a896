"""
Registration service: the only writer of tier, capacity and registration state.

CONCURRENCY STRATEGY: Conditional Updates inside One Transaction
================================================================

Problem:
  Two attendees try to take the last "General" ticket simultaneously.
  Both read sold=99/available=100, both increment, both succeed.
  Result: Overselling, and `sold`/`booked` drift apart if one write fails.

Solution:
  1. Validate preconditions from a plain read (cheap, may be stale)
  2. In one transaction:
       UPDATE ticket_types SET sold = sold + 1
         WHERE event_id = :e AND name = :tier AND sold < available
       UPDATE events SET booked = booked + 1
         WHERE id = :e AND booked < capacity
       INSERT INTO registrations (...)
     Each UPDATE re-validates its own condition; rowcount == 0 aborts
  3. Any failure rolls the whole transaction back, so the tier increment,
     the capacity increment and the registration row land together or not
     at all

  Cancellation is the inverse: DELETE the registration (rowcount == 0 means
  someone else already cancelled it), then the two conditional decrements.

  The only serialization point is the row lock taken by the UPDATE on the
  tier row; different events never contend. The unique (event_id, user_id)
  constraint catches two concurrent registrations from the same user.

Transient storage faults during the commit step are retried with backoff
(COMMIT_RETRY_ATTEMPTS), since nothing has been observed by the caller yet.
"""

import time
from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.clock import Clock, ensure_utc
from ticketing.core.errors import (
    AlreadyRegisteredError,
    EventFullError,
    EventInPastError,
    EventNotActiveError,
    EventNotFoundError,
    ForbiddenError,
    InvalidTransitionError,
    RegistrationNotFoundError,
    SoldOutError,
    TicketingError,
)
from ticketing.core.logging import get_logger
from ticketing.core.metrics import (
    record_payment_transition,
    record_registration_attempt,
    registration_cancellations,
    registration_latency,
)
from ticketing.core.security import CurrentUser
from ticketing.models.enums import EventStatus, PaymentStatus
from ticketing.models.registration import UNIQUE_USER_PER_EVENT, Registration
from ticketing.schemas.registration import PaymentStatusUpdate, RegistrationCreate
from ticketing.services import capacity_ledger, registration_ledger, ticket_catalog
from ticketing.services.atomic import run_atomic
from ticketing.services.event_service import ensure_can_manage, get_event, load_event

logger = get_logger(__name__)

CONFLICT_ERRORS = (SoldOutError, EventFullError, AlreadyRegisteredError)

# SQLite reports the columns, Postgres the constraint name
DUPLICATE_REGISTRATION_MARKERS = (
    UNIQUE_USER_PER_EVENT,
    "registrations.event_id, registrations.user_id",
)


def is_duplicate_registration(error: IntegrityError) -> bool:
    """True only for a violation of the one-registration-per-user-and-event constraint."""
    message = str(error.orig)
    return any(marker in message for marker in DUPLICATE_REGISTRATION_MARKERS)


async def register_for_event(
    db: AsyncSession,
    user: CurrentUser,
    data: RegistrationCreate,
    clock: Clock,
) -> Registration:
    """Register a user for one ticket tier of an event."""
    start_time = time.perf_counter()
    try:
        registration = await _register(db, user, data, clock)
    except CONFLICT_ERRORS as e:
        record_registration_attempt("conflict")
        logger.info("registration_rejected", event_id=data.event_id, user_id=user.id, code=e.code.value)
        raise
    except TicketingError as e:
        record_registration_attempt("error" if e.status_code >= 500 else "rejected")
        logger.info("registration_rejected", event_id=data.event_id, user_id=user.id, code=e.code.value)
        raise
    except Exception:
        record_registration_attempt("error")
        raise
    finally:
        registration_latency.observe(time.perf_counter() - start_time)

    record_registration_attempt("success")
    return registration


async def _register(
    db: AsyncSession,
    user: CurrentUser,
    data: RegistrationCreate,
    clock: Clock,
) -> Registration:
    # Preconditions, first failure wins. These reads may be stale by the time
    # the conditional updates run; the updates re-check what matters.
    event = await load_event(db, data.event_id)
    if not event:
        raise EventNotFoundError(f"Event {data.event_id} not found")

    if event.status != EventStatus.ACTIVE.value:
        raise EventNotActiveError()

    if ensure_utc(event.date) <= clock.now():
        raise EventInPastError("Cannot register for past events")

    if await registration_ledger.find_user_registration(db, event.id, user.id):
        raise AlreadyRegisteredError()

    tier = ticket_catalog.find_tier(event, data.ticket_type)
    if not ticket_catalog.has_free_unit(tier):
        raise SoldOutError()

    if not capacity_ledger.has_capacity(event):
        raise EventFullError()

    # Rollback expires ORM state, so keep plain values for the commit step
    event_id = event.id
    tier_name = tier.name
    price = Decimal(tier.price)
    payment_status = registration_ledger.initial_payment_status(price)
    now = clock.now()

    if payment_status == PaymentStatus.PAID:
        payment_details = {"paid_at": now.isoformat()}
    elif data.payment_details is not None:
        payment_details = data.payment_details.model_dump(exclude={"method"}, exclude_none=True)
    else:
        payment_details = {}

    async def commit_registration() -> Registration:
        await ticket_catalog.reserve_ticket(db, event_id, tier_name)
        await capacity_ledger.reserve_capacity(db, event_id)

        registration = Registration(
            event_id=event_id,
            user_id=user.id,
            user_name=user.name,
            user_email=user.email.lower(),
            user_phone=data.user_phone,
            ticket_type_name=tier_name,
            ticket_price=price,
            payment_method=data.payment_method.value,
            payment_status=payment_status.value,
            payment_details=payment_details,
            created_at=now,
            updated_at=now,
        )
        db.add(registration)
        try:
            await db.flush()
        except IntegrityError as e:
            if not is_duplicate_registration(e):
                raise
            # Lost a race against another registration by the same user
            raise AlreadyRegisteredError() from e

        await db.commit()
        return registration

    registration = await run_atomic(db, "register", commit_registration)
    await db.refresh(registration)

    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=event_id,
        user_id=user.id,
        ticket_type=tier_name,
        ticket_price=str(price),
        payment_status=payment_status.value,
    )
    return registration


async def cancel_registration(
    db: AsyncSession,
    registration_id: int,
    requester: CurrentUser,
    clock: Clock,
) -> None:
    """Delete a registration and give its ticket and capacity unit back."""
    registration = await registration_ledger.find_registration(db, registration_id)
    if not registration:
        raise RegistrationNotFoundError()

    if registration.user_id != requester.id and not requester.is_admin:
        raise ForbiddenError("Not authorized to cancel this registration")

    event = await load_event(db, registration.event_id)
    if not event:
        raise EventNotFoundError()

    if ensure_utc(event.date) < clock.now():
        raise EventInPastError("Cannot cancel registration for past events")

    event_id = event.id
    tier_name = registration.ticket_type_name
    user_id = registration.user_id

    async def commit_cancellation() -> None:
        result = await db.execute(
            delete(Registration)
            .where(Registration.id == registration_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            # Cancelled by a concurrent request after our read
            raise RegistrationNotFoundError()

        await ticket_catalog.release_ticket(db, event_id, tier_name)
        await capacity_ledger.release_capacity(db, event_id)
        await db.commit()

    await run_atomic(db, "cancel", commit_cancellation)

    registration_cancellations.inc()
    logger.info(
        "registration_cancelled",
        registration_id=registration_id,
        event_id=event_id,
        user_id=user_id,
        cancelled_by=requester.id,
        ticket_type=tier_name,
    )


async def update_payment_status(
    db: AsyncSession,
    registration_id: int,
    status_update: PaymentStatusUpdate,
    requester: CurrentUser,
    clock: Clock,
) -> Registration:
    """Move a registration through the payment state machine (creator/admin only)."""
    registration = await registration_ledger.find_registration(db, registration_id)
    if not registration:
        raise RegistrationNotFoundError()

    event = await get_event(db, registration.event_id)
    ensure_can_manage(event, requester, "update payment status")

    current = PaymentStatus(registration.payment_status)
    new_status = status_update.payment_status
    registration_ledger.check_transition(current, new_status)

    details = registration_ledger.merge_payment_details(
        registration.payment_details,
        new_status,
        clock.now(),
        transaction_id=status_update.transaction_id,
        payment_reference=status_update.payment_reference,
    )

    event_id = event.id

    async def commit_status_change() -> None:
        # Compare-and-set on the status we validated against
        result = await db.execute(
            update(Registration)
            .where(
                Registration.id == registration_id,
                Registration.payment_status == current.value,
            )
            .values(payment_status=new_status.value, payment_details=details)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise InvalidTransitionError("Payment status changed concurrently, reload and retry")
        await db.commit()

    await run_atomic(db, "payment_status", commit_status_change)

    record_payment_transition(current.value, new_status.value)
    logger.info(
        "payment_status_updated",
        registration_id=registration_id,
        event_id=event_id,
        from_status=current.value,
        to_status=new_status.value,
        updated_by=requester.id,
    )
    return await registration_ledger.find_registration(db, registration_id)


async def check_registration(
    db: AsyncSession, event_id: int, user_id: int
) -> Optional[Registration]:
    """Pure read: the user's registration for an event, if any."""
    return await registration_ledger.find_user_registration(db, event_id, user_id)


async def list_user_registrations(
    db: AsyncSession,
    user: CurrentUser,
    payment_status: Optional[PaymentStatus] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Registration], int]:
    return await registration_ledger.list_registrations(
        db, user_id=user.id, payment_status=payment_status, page=page, limit=limit
    )


async def list_event_registrations(
    db: AsyncSession,
    event_id: int,
    requester: CurrentUser,
    payment_status: Optional[PaymentStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Registration], int]:
    event = await get_event(db, event_id)
    ensure_can_manage(event, requester, "view registrations")
    return await registration_ledger.list_registrations(
        db, event_id=event_id, payment_status=payment_status, page=page, limit=limit
    )
