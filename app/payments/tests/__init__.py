"""
Tests for the payments app.

This package contains test modules for:
- test_models.py: Payment and WebhookEvent transitions and helpers
- test_adapters.py: PaystackAdapter requests, parsing and signatures
- test_handlers.py: Webhook handler registry and charge handlers
- test_views.py: Paystack webhook endpoint
- test_processors.py: Payment queue handlers
- test_integration.py: Payment-to-enrollment workflows through the job queue

Usage:
    pytest payments/tests/
"""
