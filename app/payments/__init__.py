"""
Payments app for Paystack reconciliation.

This app handles:
- Payment verification against the gateway
- Polling of stale pending payments and cleanup of abandoned ones
- Webhook ingestion and event handling
- Handing paid enrollments to the enrollment queue

Related apps:
    - courses: Enrollment activated after payment
    - jobs: Queue façades and the job runtime
    - notifications: Receipts and realtime payment events

Usage:
    from jobs.runtime import get_runtime

    get_runtime().payments.verify_payment_delayed(payment.reference)
"""
