"""
WebhookEvent model for Paystack webhook deliveries.

Stores every verified webhook once per delivery key for idempotent
processing and audit trails. Paystack events carry no event id, so the key
is ``"{event}:{reference}"``; the unique constraint on it makes a
redelivered event map to the existing row.

Usage:
    from payments.models import WebhookEvent
    from payments.state_machines import WebhookEventStatus

    event, created = WebhookEvent.objects.get_or_create(
        event_key=WebhookEvent.build_key("charge.success", "abc123"),
        defaults={"event_type": "charge.success", "payload": payload},
    )
    if not created and event.is_processed:
        return HttpResponse(status=200)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks Paystack webhook events for idempotent processing.

    Processing Flow:
        1. Webhook arrives, signature verified
        2. get_or_create by event_key
        3. If PROCESSED -> 200 (duplicate)
        4. Enqueue PROCESS_WEBHOOK
        5. The job sets PROCESSING, dispatches, then PROCESSED or FAILED

    Fields:
        event_key: "{event}:{reference}", unique
        event_type: Paystack event name (e.g. "charge.success")
        payload: Full webhook body
        status: Processing status
        processed_at: When processing succeeded
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    event_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Delivery key '{event}:{reference}' - unique for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Paystack event type (e.g., 'charge.success')",
    )

    payload = models.JSONField(
        help_text="Full webhook payload from Paystack (JSON)",
    )

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="payments_we_status_1a8e3f_idx"),
            models.Index(fields=["event_type", "created_at"], name="payments_we_event_t_6c0b2d_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.event_key})"

    @staticmethod
    def build_key(event_type: str, reference: str) -> str:
        return f"{event_type}:{reference}"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def reference(self) -> str | None:
        """Transaction reference from ``payload.data.reference``."""
        try:
            return self.payload.get("data", {}).get("reference")
        except (AttributeError, TypeError):
            return None

    # ==========================================================================
    # Helper Methods
    # ==========================================================================

    def mark_processing(self) -> None:
        """
        Mark event as being processed.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        """
        Mark event as successfully processed.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """
        Mark event as failed with error message.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
