"""
Payment domain models.

This module contains all payment-related models:
- Payment: A course payment made through Paystack
- WebhookEvent: Paystack webhook event tracking for idempotent processing
"""

from payments.models.payment import Payment
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "WebhookEvent",
]
