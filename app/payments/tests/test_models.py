"""
Tests for payment model behavior.

Covers:
- EscrowPayment state transitions and optimistic locking
- CreatorEarning append-only guarantees and sign constraint
- WebhookEvent payload helpers
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from payments.models import CreatorEarning, EscrowPayment
from payments.state_machines import EarningType, EscrowStatus, WebhookEventStatus
from payments.tests.factories import (
    CreatorEarningFactory,
    EscrowPaymentFactory,
    ReconciliationAlertFactory,
    WebhookEventFactory,
)


class TestEscrowPaymentTransitions:
    """Tests for the EscrowPayment state machine."""

    def test_release_path(self, db):
        escrow = EscrowPaymentFactory()

        escrow.begin_release("done")
        escrow.complete_release("tr_1")

        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.release_attempts == 1
        assert escrow.gateway_transfer_id == "tr_1"

    def test_abort_release_returns_to_held(self, db):
        escrow = EscrowPaymentFactory()

        escrow.begin_release("Delivered")
        escrow.abort_release()

        assert escrow.status == EscrowStatus.HELD
        assert escrow.release_reason is None

    def test_abort_of_retry_returns_to_release_failed(self, db):
        escrow = EscrowPaymentFactory(status=EscrowStatus.RELEASED, gateway_transfer_id="tr_1")
        escrow.mark_release_failed()
        escrow.retry_release()

        escrow.abort_release()

        assert escrow.status == EscrowStatus.RELEASE_FAILED

    def test_released_cannot_be_refunded(self, db):
        escrow = EscrowPaymentFactory(status=EscrowStatus.RELEASED)

        with pytest.raises(TransitionNotAllowed):
            escrow.begin_refund()

    def test_refunded_is_terminal(self, db):
        escrow = EscrowPaymentFactory(status=EscrowStatus.REFUNDED)

        with pytest.raises(TransitionNotAllowed):
            escrow.begin_release()

    def test_reversal_and_retry(self, db):
        escrow = EscrowPaymentFactory(status=EscrowStatus.RELEASED, gateway_transfer_id="tr_1")

        escrow.mark_release_failed()
        escrow.retry_release()

        assert escrow.status == EscrowStatus.RELEASE_PENDING
        assert escrow.gateway_transfer_id is None

    def test_stale_copy_cannot_overwrite(self, db):
        """Two copies of the same row: the second save loses."""
        escrow = EscrowPaymentFactory()
        first = EscrowPayment.objects.get(pk=escrow.pk)
        second = EscrowPayment.objects.get(pk=escrow.pk)

        first.begin_release()
        first.save()

        second.begin_refund()
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            second.save()

        escrow.refresh_from_db()
        assert escrow.status == EscrowStatus.RELEASE_PENDING

    def test_amount_must_be_positive(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            EscrowPaymentFactory(amount=Decimal("0"))


class TestCreatorEarning:
    """Tests for the append-only earnings ledger."""

    def test_cannot_be_updated(self, db):
        earning = CreatorEarningFactory()
        earning.amount = Decimal("1.00")

        with pytest.raises(ValueError):
            earning.save()

    def test_cannot_be_deleted(self, db):
        earning = CreatorEarningFactory()

        with pytest.raises(ValueError):
            earning.delete()

        assert CreatorEarning.objects.filter(pk=earning.pk).exists()

    def test_negative_amount_only_for_reversals(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            CreatorEarningFactory(amount=Decimal("-5.00"), earning_type=EarningType.CPM)

        reversal = CreatorEarningFactory(
            amount=Decimal("-5.00"), earning_type=EarningType.REVERSAL
        )
        assert reversal.pk is not None


class TestWebhookEvent:
    def test_object_helpers(self, db):
        event = WebhookEventFactory(
            payload={"data": {"object": {"id": "tr_123", "amount": 100}}}
        )

        assert event.get_object_id() == "tr_123"
        assert event.get_object()["amount"] == 100

    def test_malformed_payload(self, db):
        event = WebhookEventFactory(payload={"data": "oops"})

        assert event.get_object() == {}
        assert event.get_object_id() is None

    def test_status_helpers(self, db):
        event = WebhookEventFactory()

        event.mark_processing()
        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

        event.mark_failed("boom")
        assert event.error_message == "boom"

        event.mark_processed()
        assert event.is_processed
        assert event.error_message is None


class TestReconciliationAlert:
    def test_resolve(self, admin_user):
        alert = ReconciliationAlertFactory()

        alert.resolve(admin_user, notes="Transfer re-sent")
        alert.save()

        alert.refresh_from_db()
        assert alert.is_resolved
        assert alert.resolved_by == admin_user
