"""
Pydantic schemas for the per-event analytics projection.
"""

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel

from ticketing.models.enums import PaymentStatus


class RecentRegistration(BaseModel):
    user_name: str
    user_email: str
    ticket_type_name: str
    payment_status: PaymentStatus
    created_at: datetime


class EventAnalytics(BaseModel):
    event_id: int
    total_registrations: int
    total_revenue: Decimal
    payment_status_breakdown: dict[str, int]
    ticket_type_breakdown: dict[str, int]
    payment_method_breakdown: dict[str, int]
    recent_registrations: list[RecentRegistration]
