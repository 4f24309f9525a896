from ticketing.schemas.event import (
    EventCreate,
    EventDeleteResponse,
    EventListResponse,
    EventResponse,
    EventUpdate,
    TicketTypeCreate,
    TicketTypeUpdate,
)
from ticketing.schemas.registration import (
    RegistrationCreate,
    RegistrationResponse,
    RegistrationCheckResponse,
    RegistrationListResponse,
    PaymentStatusUpdate,
)
from ticketing.schemas.analytics import EventAnalytics

__all__ = [
    "EventCreate", "EventResponse", "EventListResponse", "TicketTypeCreate",
    "EventUpdate", "TicketTypeUpdate", "EventDeleteResponse",
    "RegistrationCreate", "RegistrationResponse", "RegistrationCheckResponse",
    "RegistrationListResponse", "PaymentStatusUpdate",
    "EventAnalytics",
]
