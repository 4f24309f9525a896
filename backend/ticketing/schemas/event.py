"""
Pydantic schemas for event and ticket-tier request/response validation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ticketing.models.enums import EventStatus, PaymentMethod


def strip_tier_name(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Ticket type name cannot be blank")
    return value


class TicketTypeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    available: int = Field(..., ge=0, le=10000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return strip_tier_name(value)


class PayeeDetails(BaseModel):
    bank_name: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=50)
    username: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)


class PaymentMethodOption(BaseModel):
    type: PaymentMethod
    details: PayeeDetails = Field(default_factory=PayeeDetails)


class EventCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=2000)
    location: str = Field(..., min_length=3, max_length=255)
    category: str = Field(..., min_length=1, max_length=50)
    date: datetime
    image_url: Optional[str] = Field(None, max_length=500)
    capacity: int = Field(..., gt=0, le=10000)
    ticket_types: list[TicketTypeCreate] = Field(..., min_length=1)
    payment_methods: list[PaymentMethodOption] = Field(..., min_length=1)

    @field_validator("ticket_types")
    @classmethod
    def unique_tier_names(cls, value: list[TicketTypeCreate]) -> list[TicketTypeCreate]:
        names = [tier.name for tier in value]
        if len(names) != len(set(names)):
            raise ValueError("Ticket type names must be unique within an event")
        return value


class TicketTypeUpdate(BaseModel):
    """Changes to an existing tier, matched by name. Tiers are never added or removed."""

    name: str = Field(..., min_length=1, max_length=50)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    description: Optional[str] = Field(None, max_length=500)
    available: Optional[int] = Field(None, ge=0, le=10000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return strip_tier_name(value)


class EventUpdate(BaseModel):
    """Partial update; only fields present in the request are applied."""

    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=10, max_length=2000)
    location: Optional[str] = Field(None, min_length=3, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    date: Optional[datetime] = None
    image_url: Optional[str] = Field(None, max_length=500)
    status: Optional[EventStatus] = None
    capacity: Optional[int] = Field(None, gt=0, le=10000)
    ticket_types: Optional[list[TicketTypeUpdate]] = None
    payment_methods: Optional[list[PaymentMethodOption]] = Field(None, min_length=1)

    @field_validator("ticket_types")
    @classmethod
    def unique_tier_names(cls, value: Optional[list[TicketTypeUpdate]]) -> Optional[list[TicketTypeUpdate]]:
        if value is not None:
            names = [tier.name for tier in value]
            if len(names) != len(set(names)):
                raise ValueError("Ticket type names must be unique within an event")
        return value


class TicketTypeResponse(BaseModel):
    name: str
    price: Decimal
    description: Optional[str]
    available: int
    sold: int

    model_config = {"from_attributes": True}


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    location: str
    category: str
    date: datetime
    image_url: Optional[str]
    creator_id: int
    status: EventStatus
    capacity: int
    booked: int
    ticket_types: list[TicketTypeResponse]
    payment_methods: list[PaymentMethodOption]
    created_at: datetime

    model_config = {"from_attributes": True}


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False


class EventDeleteResponse(BaseModel):
    message: str
    event_id: int
    registrations_deleted: int
