"""
Unit tests for the payment status state machine and details merging.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from ticketing.core.errors import InvalidTransitionError
from ticketing.models.enums import PaymentStatus
from ticketing.services.registration_ledger import (
    can_transition,
    check_transition,
    initial_payment_status,
    merge_payment_details,
)

PENDING, PAID, REFUNDED = PaymentStatus.PENDING, PaymentStatus.PAID, PaymentStatus.REFUNDED


class TestInitialStatus:
    def test_free_ticket_is_auto_paid(self):
        assert initial_payment_status(Decimal("0")) == PAID

    def test_priced_ticket_starts_pending(self):
        assert initial_payment_status(Decimal("0.01")) == PENDING


class TestTransitions:
    @pytest.mark.parametrize(
        "current,new",
        [(PENDING, PAID), (PENDING, REFUNDED), (PAID, REFUNDED)],
    )
    def test_allowed(self, current, new):
        assert can_transition(current, new)
        check_transition(current, new)

    @pytest.mark.parametrize(
        "current,new",
        [
            (REFUNDED, PAID),
            (REFUNDED, PENDING),
            (PAID, PENDING),
            (PENDING, PENDING),
            (PAID, PAID),
            (REFUNDED, REFUNDED),
        ],
    )
    def test_rejected(self, current, new):
        assert not can_transition(current, new)
        with pytest.raises(InvalidTransitionError):
            check_transition(current, new)


class TestMergePaymentDetails:
    NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)

    def test_paid_stamps_paid_at_and_keeps_other_fields(self):
        existing = {"cash_app_username": "$ana", "payment_reference": "old-ref"}

        merged = merge_payment_details(existing, PAID, self.NOW, transaction_id="TX1")

        assert merged == {
            "cash_app_username": "$ana",
            "payment_reference": "old-ref",
            "transaction_id": "TX1",
            "paid_at": self.NOW.isoformat(),
        }

    def test_existing_dict_is_not_mutated(self):
        existing = {"cash_app_username": "$ana"}
        merge_payment_details(existing, PAID, self.NOW, payment_reference="REF")
        assert existing == {"cash_app_username": "$ana"}

    def test_refund_does_not_touch_paid_at(self):
        existing = {"paid_at": "2026-05-01T00:00:00+00:00"}
        merged = merge_payment_details(existing, REFUNDED, self.NOW)
        assert merged == existing

    def test_handles_missing_details(self):
        assert merge_payment_details(None, REFUNDED, self.NOW) == {}
