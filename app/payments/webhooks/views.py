"""
Webhook endpoint views for Paystack.

This module provides the HTTP endpoint for receiving Paystack webhooks.
The view:
1. Verifies the webhook signature
2. Creates/retrieves the WebhookEvent record (idempotent)
3. Queues the event for async processing
4. Returns immediately

Usage:
    # In urls.py
    from payments.webhooks.views import paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
    ]
"""

from __future__ import annotations

import json
import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from jobs.runtime import get_runtime
from payments.adapters import PaystackAdapter
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus


logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Paystack-Signature"


@csrf_exempt
@require_POST
def paystack_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue Paystack webhook events.

    Security:
    - HMAC-SHA512 signature of the raw body, compared in constant time
    - Nothing is stored or queued for an unsigned or mis-signed request

    Idempotency:
    - WebhookEvent.event_key ("{event}:{reference}") is unique
    - A redelivered, already processed event returns 200 without work

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Missing/invalid signature or malformed payload
    """
    payload = request.body
    signature = request.headers.get(SIGNATURE_HEADER, "")

    if not signature:
        logger.warning("Webhook received without X-Paystack-Signature header")
        return HttpResponse("Missing signature", status=400)

    # Step 1: Verify signature
    if not PaystackAdapter.from_settings().verify_webhook_signature(payload, signature):
        logger.warning("Webhook signature verification failed")
        return HttpResponse("Invalid signature", status=400)

    try:
        event_data = json.loads(payload)
    except (TypeError, ValueError):
        logger.warning("Webhook body is not valid JSON")
        return HttpResponse("Invalid payload", status=400)

    event_type = event_data.get("event") if isinstance(event_data, dict) else None
    data = event_data.get("data") if isinstance(event_data, dict) else None
    reference = data.get("reference") if isinstance(data, dict) else None

    if not event_type or not reference:
        logger.warning("Webhook missing required fields")
        return HttpResponse("Invalid event", status=400)

    event_key = WebhookEvent.build_key(event_type, reference)
    logger.info(
        f"Received Paystack webhook: {event_type}",
        extra={"event_key": event_key, "event_type": event_type},
    )

    # Step 2: Create/get WebhookEvent (idempotent)
    webhook_event, created = WebhookEvent.objects.get_or_create(
        event_key=event_key,
        defaults={
            "event_type": event_type,
            "payload": event_data,
            "status": WebhookEventStatus.PENDING,
        },
    )

    # Step 3: If already processed, return success
    if not created and webhook_event.is_processed:
        logger.info(
            "Webhook already processed, returning success",
            extra={"event_key": event_key},
        )
        return HttpResponse("Already processed", status=200)

    # Step 4: Queue for async processing
    try:
        get_runtime().payments.process_webhook(webhook_event.id)
    except Exception as e:
        # The poller re-verifies pending payments, so the event is not lost
        logger.error(
            f"Failed to queue webhook: {type(e).__name__}",
            extra={"event_key": event_key},
            exc_info=True,
        )

    return HttpResponse("Accepted", status=200)
