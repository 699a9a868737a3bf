"""
Webhook handling for payment events from Paystack.

Webhooks are verified, stored idempotently, and processed asynchronously
by the PROCESS_WEBHOOK job.

Usage:
    # In urls.py
    from payments.webhooks.views import paystack_webhook

    urlpatterns = [
        path("webhooks/paystack/", paystack_webhook, name="paystack_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler

__all__ = [
    "dispatch_webhook",
    "register_handler",
]
