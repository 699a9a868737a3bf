"""
Payments app configuration.

This app provides payment reconciliation with Paystack:
- Payment and WebhookEvent models
- PaystackAdapter gateway client
- PaymentProcessor handlers for the payment queue
- Webhook endpoint and handler registry
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
