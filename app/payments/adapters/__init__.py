"""
Payment adapters for external services.

All payment gateway calls go through these adapters to ensure consistent
error handling, timeouts and observability.

Usage:
    from payments.adapters import PaystackAdapter

    verification = PaystackAdapter.from_settings().verify_transaction("abc123")
"""

from payments.adapters.paystack_adapter import (
    InitializeTransactionResult,
    PaystackAdapter,
    TransactionVerification,
    to_major_units,
    to_minor_units,
)

__all__ = [
    "InitializeTransactionResult",
    "PaystackAdapter",
    "TransactionVerification",
    "to_major_units",
    "to_minor_units",
]
