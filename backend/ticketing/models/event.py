"""
Event model with embedded, ordered ticket tiers.

Key design decisions:
- `booked` and per-tier `sold` are both stored; they are only ever changed by
  conditional UPDATEs inside the same transaction as the registration write
- CHECK constraints are the final safety net for 0 <= booked <= capacity and
  0 <= sold <= available
- Tier name is unique per event and is the lookup key used by registrations
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ticketing.db.base import Base, TimestampMixin
from ticketing.models.enums import EventStatus, sql_in


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(2000), nullable=False)
    location = Column(String(255), nullable=False)
    category = Column(String(50), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    image_url = Column(String(500), nullable=True)
    creator_id = Column(Integer, nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EventStatus.ACTIVE.value)
    capacity = Column(Integer, nullable=False)
    booked = Column(Integer, nullable=False, default=0)
    # Accepted payment methods with payee details, e.g. [{"type": "cash_app", "details": {...}}]
    payment_methods = Column(JSON, nullable=False, default=list)

    ticket_types = relationship(
        "TicketType",
        back_populates="event",
        lazy="selectin",
        order_by="TicketType.position",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("capacity > 0", name="check_event_capacity_positive"),
        CheckConstraint("booked >= 0", name="check_event_booked_non_negative"),
        CheckConstraint("booked <= capacity", name="check_event_booked_lte_capacity"),
        CheckConstraint(f"status IN ({sql_in(EventStatus)})", name="check_event_status"),
        Index("ix_events_date_status", "date", "status"),
        Index("ix_events_category_date", "category", "date"),
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, booked={self.booked}/{self.capacity})>"


class TicketType(Base):
    __tablename__ = "ticket_types"

    id = Column(Integer, primary_key=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    name = Column(String(50), nullable=False)
    description = Column(String(500), nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    available = Column(Integer, nullable=False)
    sold = Column(Integer, nullable=False, default=0)

    event = relationship("Event", back_populates="ticket_types")

    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_ticket_type_event_name"),
        CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
        CheckConstraint("available >= 0", name="check_ticket_available_non_negative"),
        CheckConstraint("sold >= 0", name="check_ticket_sold_non_negative"),
        CheckConstraint("sold <= available", name="check_ticket_sold_lte_available"),
    )

    def __repr__(self) -> str:
        return f"<TicketType(event={self.event_id}, name={self.name}, sold={self.sold}/{self.available})>"
