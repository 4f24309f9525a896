from ticketing.models.event import Event, TicketType
from ticketing.models.registration import Registration
from ticketing.models.enums import EventStatus, PaymentMethod, PaymentStatus

__all__ = [
    "Event", "TicketType", "Registration",
    "EventStatus", "PaymentMethod", "PaymentStatus",
]
