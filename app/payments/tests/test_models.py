"""
Tests for Payment and WebhookEvent models.

Tests cover:
- Payment FSM transitions and their side fields
- Optimistic locking on conflicting transitions
- WebhookEvent key, reference extraction and status helpers
"""

import pytest
from django.db import transaction
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus, WebhookEventStatus
from payments.tests.factories import PaymentFactory, WebhookEventFactory


# =============================================================================
# Payment Transitions
# =============================================================================


@pytest.mark.django_db
class TestPaymentTransitions:
    def test_mark_success_records_payment(self):
        payment = PaymentFactory(failure_reason="earlier failure")

        payment.mark_success(channel="card", gateway_response={"status": "success"})
        payment.save()

        payment.refresh_from_db()
        assert payment.status == PaymentStatus.SUCCESS
        assert payment.is_successful
        assert payment.paid_at is not None
        assert payment.payment_method == "card"
        assert payment.gateway_response == {"status": "success"}
        assert payment.failure_reason is None

    def test_late_success_after_failure_is_allowed(self):
        payment = PaymentFactory(status=PaymentStatus.FAILED)

        payment.mark_success()

        assert payment.status == PaymentStatus.SUCCESS

    def test_mark_failed_defaults_reason(self):
        payment = PaymentFactory()

        payment.mark_failed()

        assert payment.status == PaymentStatus.FAILED
        assert payment.failure_reason == "Payment failed"

    def test_cancel_records_reason(self):
        payment = PaymentFactory()

        payment.cancel(reason="Abandoned")

        assert payment.status == PaymentStatus.CANCELLED
        assert payment.failure_reason == "Abandoned"

    def test_successful_payment_cannot_fail(self):
        payment = PaymentFactory(status=PaymentStatus.SUCCESS)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_failed()

    def test_successful_payment_cannot_succeed_twice(self):
        payment = PaymentFactory(status=PaymentStatus.SUCCESS)

        with pytest.raises(TransitionNotAllowed):
            payment.mark_success()

    def test_conflicting_transition_raises_on_save(self):
        payment = PaymentFactory()
        stale = Payment.objects.get(pk=payment.pk)

        payment.mark_success()
        payment.save()

        stale.cancel()
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            stale.save()

        payment.refresh_from_db()
        assert payment.status == PaymentStatus.SUCCESS

    def test_str(self):
        payment = PaymentFactory(reference="ref_str")

        assert "ref_str" in str(payment)
        assert "pending" in str(payment)


# =============================================================================
# WebhookEvent
# =============================================================================


@pytest.mark.django_db
class TestWebhookEvent:
    def test_build_key(self):
        assert WebhookEvent.build_key("charge.success", "ref_1") == "charge.success:ref_1"

    def test_reference_from_payload(self):
        event = WebhookEventFactory(reference="ref_42")

        assert event.reference == "ref_42"
        assert event.event_key == "charge.success:ref_42"

    def test_reference_missing(self):
        event = WebhookEventFactory(payload={"event": "charge.success"})

        assert event.reference is None

    def test_reference_with_malformed_data(self):
        event = WebhookEventFactory(payload={"event": "charge.success", "data": "oops"})

        assert event.reference is None

    def test_status_helpers(self):
        event = WebhookEventFactory()

        event.mark_processing()
        assert event.status == WebhookEventStatus.PROCESSING
        assert event.retry_count == 1

        event.mark_failed("boom")
        assert event.status == WebhookEventStatus.FAILED
        assert event.error_message == "boom"

        event.mark_processed()
        assert event.is_processed
        assert event.processed_at is not None
        assert event.error_message is None
