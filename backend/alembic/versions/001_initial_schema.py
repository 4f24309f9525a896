"""Initial schema: events, ticket_types, registrations with counter constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(2000), nullable=False),
        sa.Column("location", sa.String(255), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("creator_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("booked", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_methods", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("capacity > 0", name="check_event_capacity_positive"),
        sa.CheckConstraint("booked >= 0", name="check_event_booked_non_negative"),
        sa.CheckConstraint("booked <= capacity", name="check_event_booked_lte_capacity"),
        sa.CheckConstraint(
            "status IN ('active', 'cancelled', 'completed')", name="check_event_status"
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_creator_id", "events", ["creator_id"])
    # Listing query: upcoming active events ordered by date
    op.create_index("ix_events_date_status", "events", ["date", "status"])
    op.create_index("ix_events_category_date", "events", ["category", "date"])

    op.create_table(
        "ticket_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("available", sa.Integer(), nullable=False),
        sa.Column("sold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        # (event_id, name) is the key the conditional sold update hits
        sa.UniqueConstraint("event_id", "name", name="uq_ticket_type_event_name"),
        sa.CheckConstraint("price >= 0", name="check_ticket_price_non_negative"),
        sa.CheckConstraint("available >= 0", name="check_ticket_available_non_negative"),
        sa.CheckConstraint("sold >= 0", name="check_ticket_sold_non_negative"),
        sa.CheckConstraint("sold <= available", name="check_ticket_sold_lte_available"),
    )
    op.create_index("ix_ticket_types_event_id", "ticket_types", ["event_id"])

    op.create_table(
        "registrations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("user_name", sa.String(100), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=False),
        sa.Column("user_phone", sa.String(30), nullable=True),
        sa.Column("ticket_type_name", sa.String(50), nullable=False),
        sa.Column("ticket_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        sa.Column("payment_details", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),
        sa.CheckConstraint("ticket_price >= 0", name="check_registration_price_non_negative"),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'paid', 'refunded')",
            name="check_registration_payment_status",
        ),
        sa.CheckConstraint(
            "payment_method IN ('bank_transfer', 'cash_app', 'paypal')",
            name="check_registration_payment_method",
        ),
    )
    op.create_index("ix_registrations_id", "registrations", ["id"])
    op.create_index("ix_registrations_user_id", "registrations", ["user_id"])
    # Analytics and creator listings: registrations of one event, newest first
    op.create_index("ix_registrations_event_created", "registrations", ["event_id", "created_at"])
    op.create_index("ix_registrations_payment_status", "registrations", ["payment_status"])


def downgrade() -> None:
    op.drop_table("registrations")
    op.drop_table("ticket_types")
    op.drop_table("events")
