"""Error taxonomy for ticket inventory and registrations.

Every error carries a stable machine-readable code, the HTTP status the API
boundary answers with, and a message that is safe to show to a user.
"""

from enum import Enum

from fastapi import status


class ErrorCode(str, Enum):
    """Stable error codes returned to API clients."""

    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    EVENT_NOT_ACTIVE = "EVENT_NOT_ACTIVE"
    EVENT_IN_PAST = "EVENT_IN_PAST"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    INVALID_TICKET_TYPE = "INVALID_TICKET_TYPE"
    SOLD_OUT = "SOLD_OUT"
    EVENT_FULL = "EVENT_FULL"
    INVENTORY_BELOW_SOLD = "INVENTORY_BELOW_SOLD"
    FORBIDDEN = "FORBIDDEN"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"
    TRANSIENT_FAILURE = "TRANSIENT_FAILURE"


class TicketingError(Exception):
    """Base error with code, HTTP status and user-safe message."""

    code: ErrorCode = ErrorCode.INVARIANT_VIOLATION
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}


class EventNotFoundError(TicketingError):
    code = ErrorCode.EVENT_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Event not found"


class RegistrationNotFoundError(TicketingError):
    code = ErrorCode.REGISTRATION_NOT_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Registration not found"


class EventNotActiveError(TicketingError):
    code = ErrorCode.EVENT_NOT_ACTIVE
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Event is not active"


class EventInPastError(TicketingError):
    code = ErrorCode.EVENT_IN_PAST
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Event has already taken place"


class AlreadyRegisteredError(TicketingError):
    code = ErrorCode.ALREADY_REGISTERED
    status_code = status.HTTP_409_CONFLICT
    default_message = "You are already registered for this event"


class InvalidTicketTypeError(TicketingError):
    code = ErrorCode.INVALID_TICKET_TYPE
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid ticket type"


class SoldOutError(TicketingError):
    code = ErrorCode.SOLD_OUT
    status_code = status.HTTP_409_CONFLICT
    default_message = "No tickets available for this type"


class EventFullError(TicketingError):
    code = ErrorCode.EVENT_FULL
    status_code = status.HTTP_409_CONFLICT
    default_message = "Event is fully booked"


class InventoryBelowSoldError(TicketingError):
    code = ErrorCode.INVENTORY_BELOW_SOLD
    status_code = status.HTTP_409_CONFLICT
    default_message = "Cannot reduce inventory below what is already sold"


class ForbiddenError(TicketingError):
    code = ErrorCode.FORBIDDEN
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class InvalidTransitionError(TicketingError):
    code = ErrorCode.INVALID_TRANSITION
    status_code = status.HTTP_409_CONFLICT
    default_message = "Payment status transition is not allowed"


class InvariantViolationError(TicketingError):
    """A counter or state invariant was about to break. Indicates a bug upstream."""

    code = ErrorCode.INVARIANT_VIOLATION
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal consistency error"


class TransientStorageError(TicketingError):
    """The atomic commit could not be completed; the caller may retry."""

    code = ErrorCode.TRANSIENT_FAILURE
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Temporary storage failure, please retry"
