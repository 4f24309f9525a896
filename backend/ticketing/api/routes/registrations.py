"""
Registration endpoints: register, cancel, payment status and lookups.
"""

import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.db.session import get_db
from ticketing.models.enums import PaymentStatus
from ticketing.schemas.registration import (
    PaymentStatusUpdate,
    RegistrationCancelResponse,
    RegistrationCheckResponse,
    RegistrationCreate,
    RegistrationListResponse,
    RegistrationResponse,
)
from ticketing.services.registration_service import (
    cancel_registration,
    check_registration,
    list_event_registrations,
    list_user_registrations,
    register_for_event,
    update_payment_status,
)
from ticketing.services.cache_service import invalidate_event_cache
from ticketing.core.clock import Clock, get_clock
from ticketing.core.security import CurrentUser, get_current_user

router = APIRouter(prefix="/registrations", tags=["Registrations"])


def _page(registrations, total: int, page: int, limit: int) -> RegistrationListResponse:
    return RegistrationListResponse(
        registrations=[RegistrationResponse.model_validate(r) for r in registrations],
        total=total,
        page=page,
        limit=limit,
        pages=math.ceil(total / limit) if total else 0,
    )


@router.post("/", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    registration_data: RegistrationCreate,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """
    Register for an event.

    Ticket tier, event capacity and the registration row are written in one
    transaction with conditional updates, so the last unit is never sold twice.
    Free tickets are marked paid immediately; paid tiers start pending.
    """
    registration = await register_for_event(db, user, registration_data, clock)
    # Listing shows booked/sold counters
    await invalidate_event_cache()
    return registration


@router.get("/my-registrations", response_model=RegistrationListResponse)
async def my_registrations_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    payment_status: Optional[PaymentStatus] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's registrations, newest first."""
    registrations, total = await list_user_registrations(db, user, payment_status, page, limit)
    return _page(registrations, total, page, limit)


@router.get("/event/{event_id}", response_model=RegistrationListResponse)
async def event_registrations_endpoint(
    event_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    payment_status: Optional[PaymentStatus] = Query(None),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Registrations for an event. Creator or admin only."""
    registrations, total = await list_event_registrations(db, event_id, user, payment_status, page, limit)
    return _page(registrations, total, page, limit)


@router.get("/check/{event_id}", response_model=RegistrationCheckResponse)
async def check_registration_endpoint(
    event_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Whether the caller is registered for an event."""
    registration = await check_registration(db, event_id, user.id)
    return RegistrationCheckResponse(
        is_registered=registration is not None,
        registration=RegistrationResponse.model_validate(registration) if registration else None,
    )


@router.put("/{registration_id}/payment-status", response_model=RegistrationResponse)
async def update_payment_status_endpoint(
    registration_id: int,
    status_update: PaymentStatusUpdate,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Advance the payment state machine. Event creator or admin only."""
    return await update_payment_status(db, registration_id, status_update, user, clock)


@router.delete("/{registration_id}", response_model=RegistrationCancelResponse)
async def cancel_registration_endpoint(
    registration_id: int,
    user: CurrentUser = Depends(get_current_user),
    clock: Clock = Depends(get_clock),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a registration and release its ticket back to the event."""
    await cancel_registration(db, registration_id, user, clock)
    await invalidate_event_cache()
    return RegistrationCancelResponse(
        message="Registration cancelled successfully",
        registration_id=registration_id,
    )
