"""
Read-side analytics for a single event.

Pure projection over the event's registrations: recomputed per request,
never cached and never writes.
"""

from collections import Counter
from decimal import Decimal
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.clock import ensure_utc
from ticketing.core.security import CurrentUser
from ticketing.models.enums import PaymentStatus
from ticketing.models.registration import Registration
from ticketing.schemas.analytics import EventAnalytics, RecentRegistration
from ticketing.services import registration_ledger
from ticketing.services.event_service import ensure_can_manage, get_event


def project_analytics(event_id: int, registrations: Iterable[Registration], recent_limit: int = 10) -> EventAnalytics:
    registrations = list(registrations)

    status_breakdown = {status.value: 0 for status in PaymentStatus}
    status_breakdown.update(Counter(r.payment_status for r in registrations))

    revenue = sum(
        (Decimal(r.ticket_price) for r in registrations if r.payment_status == PaymentStatus.PAID.value),
        Decimal("0.00"),
    )

    recent = sorted(registrations, key=lambda r: (ensure_utc(r.created_at), r.id), reverse=True)

    return EventAnalytics(
        event_id=event_id,
        total_registrations=len(registrations),
        total_revenue=revenue,
        payment_status_breakdown=status_breakdown,
        ticket_type_breakdown=dict(Counter(r.ticket_type_name for r in registrations)),
        payment_method_breakdown=dict(Counter(r.payment_method for r in registrations)),
        recent_registrations=[
            RecentRegistration(
                user_name=r.user_name,
                user_email=r.user_email,
                ticket_type_name=r.ticket_type_name,
                payment_status=r.payment_status,
                created_at=r.created_at,
            )
            for r in recent[:recent_limit]
        ],
    )


async def get_event_analytics(
    db: AsyncSession, event_id: int, requester: CurrentUser, recent_limit: int = 10
) -> EventAnalytics:
    """Analytics for an event, restricted to its creator or an admin."""
    event = await get_event(db, event_id)
    ensure_can_manage(event, requester, "view analytics")
    registrations = await registration_ledger.all_event_registrations(db, event_id)
    return project_analytics(event_id, registrations, recent_limit)
