"""
State enums for payment models.

This module defines the state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States:
    pending → success (gateway confirmed the charge)
    pending → failed (gateway reported a failure)
    pending → cancelled (abandoned checkout, cleanup job)
    failed/cancelled → success (late confirmation from the gateway)

WebhookEvent Status:
    pending → processing → processed
    pending → processing → failed (redelivery retries)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal state: SUCCESS. No transition leaves SUCCESS, which is what
    makes a verified payment immutable.

    State Flow:
        PENDING → SUCCESS
        PENDING → FAILED
        PENDING → CANCELLED

    Late Confirmation Flow:
        FAILED → SUCCESS
        CANCELLED → SUCCESS
    """

    PENDING = "pending", "Pending"
    SUCCESS = "success", "Success"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED (can retry)
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
