"""
Webhook event handlers for Paystack events.

This module provides a handler registry and implementations for
processing the Paystack events the portal cares about.

The handler registry allows:
- Clean separation between event routing and handling
- Easy extension for new event types
- Unknown events acknowledged as no-ops

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("refund.processed")
    def handle_refund(webhook_event: WebhookEvent, payment_queue: PaymentQueue) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event, payment_queue)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from django.db import transaction

from django_fsm import ConcurrentTransition

from core.services import ServiceResult
from courses.state_machines import EnrollmentPaymentStatus
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from jobs.queues import PaymentQueue


logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


WebhookHandler = Callable[[WebhookEvent, "PaymentQueue"], ServiceResult]

# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, WebhookHandler] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Args:
        event_type: The Paystack event type (e.g., "charge.success")

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: WebhookHandler) -> WebhookHandler:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent, payment_queue: PaymentQueue) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    If no handler is registered, logs and returns success so unknown
    events are acknowledged rather than retried.

    Args:
        webhook_event: The WebhookEvent to process
        payment_queue: Queue façade handlers enqueue verification onto

    Returns:
        ServiceResult from the handler, or success if no handler
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"event_key": webhook_event.event_key},
        )
        return ServiceResult.success({"ignored": webhook_event.event_type})

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"event_key": webhook_event.event_key},
    )
    return handler(webhook_event, payment_queue)


# =============================================================================
# Charge Handlers
# =============================================================================


@register_handler("charge.success")
def handle_charge_success(webhook_event: WebhookEvent, payment_queue: PaymentQueue) -> ServiceResult:
    """
    Handle a successful charge.

    The webhook is only a trigger: the payment is verified with the gateway
    by the VERIFY_PAYMENT job, queued at the highest priority.
    """
    reference = webhook_event.reference
    if not reference:
        return ServiceResult.failure(
            "Could not extract reference from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    handle = payment_queue.verify_payment(reference=reference, priority=1)
    logger.info(
        "charge.success: verification queued",
        extra={"reference": reference, "job_id": handle.job_id, "job_created": handle.created},
    )
    return ServiceResult.success({"reference": reference, "job_id": handle.job_id})


@register_handler("charge.failed")
def handle_charge_failed(webhook_event: WebhookEvent, payment_queue: PaymentQueue) -> ServiceResult:
    """
    Handle a failed charge.

    The signed webhook is trusted: the payment is marked failed directly and
    its enrollment's payment status follows. A successful payment is never
    downgraded.
    """
    reference = webhook_event.reference
    if not reference:
        return ServiceResult.failure(
            "Could not extract reference from webhook",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    payment = Payment.objects.select_related("enrollment").filter(reference=reference).first()
    if payment is None:
        logger.warning(
            "charge.failed: payment not found",
            extra={"reference": reference, "event_key": webhook_event.event_key},
        )
        return ServiceResult.failure(
            f"Payment {reference} not found",
            error_code="PAYMENT_NOT_FOUND",
        )

    if payment.status != PaymentStatus.PENDING:
        logger.info(
            f"charge.failed: payment already {payment.status}",
            extra={"reference": reference},
        )
        return ServiceResult.success({"reference": reference, "status": payment.status})

    data = webhook_event.payload.get("data", {})
    reason = data.get("gateway_response") or "Charge failed"
    try:
        with transaction.atomic():
            payment.mark_failed(reason=reason, gateway_response=data)
            payment.save()

            enrollment = payment.enrollment
            if enrollment and enrollment.payment_status == EnrollmentPaymentStatus.PENDING:
                enrollment.fail_payment()
                enrollment.save()
    except ConcurrentTransition:
        payment.refresh_from_db()
        logger.info(
            f"charge.failed: payment changed concurrently to {payment.status}",
            extra={"reference": reference},
        )
        return ServiceResult.success({"reference": reference, "status": payment.status})

    logger.info("charge.failed: payment marked failed", extra={"reference": reference})
    return ServiceResult.success({"reference": reference, "status": PaymentStatus.FAILED})
