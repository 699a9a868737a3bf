"""
Payment-specific exceptions for payment operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment lookup failures (not retryable)
    └── PaymentNotSuccessfulError - Enrollment retry on an unpaid payment (not retryable)

    PaystackError (ExternalServiceError) - Gateway failures
        Timeouts, connection errors, 429 and 5xx are retryable; other 4xx
        responses are not. The flag is set per instance by the HTTP client.

    InvalidWebhookSignatureError - Webhook signature missing or wrong

Usage:
    from payments.exceptions import PaymentNotFoundError

    payment = Payment.objects.filter(reference=reference).first()
    if payment is None:
        raise PaymentNotFoundError(
            f"Payment {reference} not found",
            details={"reference": reference},
        )
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, ExternalServiceError


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Example:
        try:
            processor.verify_payment(ctx)
        except PaymentError as e:
            logger.error(f"Payment operation failed: {e}")
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment cannot be found.

    A verification job for a payment that does not exist points at a
    corrupted trigger; retrying cannot help.
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"
    is_retryable: bool = False


class PaymentNotSuccessfulError(PaymentError):
    """Raised when an enrollment retry is requested for an unpaid payment."""

    default_error_code: str = "PAYMENT_NOT_SUCCESSFUL"
    is_retryable: bool = False


# =============================================================================
# Gateway Exceptions
# =============================================================================


class PaystackError(ExternalServiceError):
    """
    Raised when a Paystack API call fails.

    Example:
        try:
            gateway.verify_transaction(reference)
        except PaystackError as e:
            if not e.is_retryable:
                logger.error(f"Gateway rejected verification: {e}")
            raise
    """

    default_error_code: str = "PAYSTACK_ERROR"


class InvalidWebhookSignatureError(PaymentError):
    """Raised when a webhook's X-Paystack-Signature does not verify."""

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"
    is_retryable: bool = False
