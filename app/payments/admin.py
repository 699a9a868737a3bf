"""
Payment admin configuration.

Payments and webhook events are read-only in the admin: payment state is
owned by the verification and cleanup jobs, and webhook events are an
audit trail. Failed webhook events can be re-queued with an admin action.
"""

from django.contrib import admin, messages

from jobs.runtime import get_runtime
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus, WebhookEventStatus


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Provides visibility into payment status and gateway responses.
    """

    list_display = [
        "reference",
        "user",
        "amount",
        "currency",
        "status",
        "payment_method",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "payment_method", "created_at"]
    search_fields = ["id", "reference", "user__email"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["verify_pending_payments"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "reference", "user", "enrollment"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency"),
            },
        ),
        (
            "Status",
            {
                "fields": ("status", "payment_method", "paid_at", "failure_reason"),
            },
        ),
        (
            "Gateway Data",
            {
                "fields": ("gateway_response", "metadata"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payments (audit trail)."""
        return False

    @admin.action(description="Verify selected pending payments with the gateway")
    def verify_pending_payments(self, request, queryset):
        payments = get_runtime().payments
        queued = 0
        for payment in queryset.filter(status=PaymentStatus.PENDING):
            payments.verify_payment(reference=payment.reference, priority=1)
            queued += 1
        self.message_user(request, f"Queued verification for {queued} payment(s).", messages.SUCCESS)


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "event_key",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "event_key", "event_type"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["requeue_failed_events"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "event_key", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Disable adding webhook events through admin."""
        return False

    @admin.action(description="Re-queue selected failed events")
    def requeue_failed_events(self, request, queryset):
        payments = get_runtime().payments
        requeued = 0
        for event in queryset.filter(status=WebhookEventStatus.FAILED):
            payments.process_webhook(event.id)
            requeued += 1
        self.message_user(request, f"Re-queued {requeued} webhook event(s).", messages.SUCCESS)
