"""
Registration model binding one user to one event at one ticket tier.

Key design decisions:
- Unique constraint on (event_id, user_id) backs the service-level
  "already registered" check when two requests race
- ticket_price is a snapshot taken at registration time
- Cancellation hard-deletes the row (no cancelled status)
"""

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from ticketing.db.base import Base, TimestampMixin
from ticketing.models.enums import PaymentMethod, PaymentStatus, sql_in

UNIQUE_USER_PER_EVENT = "uq_registration_event_user"


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    user_name = Column(String(100), nullable=False)
    user_email = Column(String(255), nullable=False)
    user_phone = Column(String(30), nullable=True)
    ticket_type_name = Column(String(50), nullable=False)
    ticket_price = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    payment_details = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name=UNIQUE_USER_PER_EVENT),
        CheckConstraint("ticket_price >= 0", name="check_registration_price_non_negative"),
        CheckConstraint(
            f"payment_status IN ({sql_in(PaymentStatus)})", name="check_registration_payment_status"
        ),
        CheckConstraint(
            f"payment_method IN ({sql_in(PaymentMethod)})", name="check_registration_payment_method"
        ),
        Index("ix_registrations_event_created", "event_id", "created_at"),
        Index("ix_registrations_payment_status", "payment_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Registration(id={self.id}, event={self.event_id}, user={self.user_id}, "
            f"tier={self.ticket_type_name}, status={self.payment_status})>"
        )
