"""
Paystack API adapter for payment operations.

This module provides the PaystackAdapter class which encapsulates all
Paystack API interactions. All gateway calls go through this adapter to get
consistent timeouts, error translation and logging.

Features:
- Configurable timeout on all API calls
- Error translation to PaystackError with the right is_retryable flag
- Amount conversion between major units (portal) and minor units (gateway)
- Webhook signature verification (HMAC-SHA512 of the raw body)

Configuration (via settings):
- PAYSTACK_SECRET_KEY: Secret key, also the webhook signing key
- PAYSTACK_BASE_URL: API base URL (default: https://api.paystack.co)
- PAYSTACK_TIMEOUT_SECONDS: API call timeout (default: 30)

Usage:
    from payments.adapters import PaystackAdapter

    gateway = PaystackAdapter.from_settings()
    checkout = gateway.initialize_transaction(
        email=user.email,
        amount=Decimal("499.00"),
        reference="abc123",
        metadata={"enrollment_id": enrollment.id},
    )
    redirect(checkout.authorization_url)

    verification = gateway.verify_transaction("abc123")
    if verification.is_successful:
        ...
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from django.conf import settings
from django.utils.dateparse import parse_datetime

from core.http_client import JsonHttpClient
from payments.exceptions import PaystackError

SUCCESS_STATUS = "success"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class InitializeTransactionResult:
    """
    Result of initializing a checkout.

    Attributes:
        authorization_url: Hosted checkout page to redirect the user to
        access_code: Code for the inline checkout widget
        reference: Transaction reference
    """

    authorization_url: str
    access_code: str
    reference: str


@dataclass
class TransactionVerification:
    """
    Result of verifying a transaction.

    Attributes:
        status: Gateway status ("success", "failed", "abandoned", ...)
        reference: Transaction reference
        amount: Major units
        currency: ISO 4217 code
        channel: Payment channel (card, mobile_money, bank, ...)
        paid_at: When the gateway recorded the payment
        gateway_response: Gateway's human-readable outcome
        metadata: Metadata attached at initialization
        raw: The ``data`` object as returned by the gateway
    """

    status: str
    reference: str
    amount: Decimal
    currency: str
    channel: str | None = None
    paid_at: datetime | None = None
    gateway_response: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == SUCCESS_STATUS


def to_minor_units(amount: Decimal | int | float | str) -> int:
    """499.00 → 49900."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount: int | None) -> Decimal:
    """49900 → Decimal("499.00")."""
    return (Decimal(amount or 0) / 100).quantize(Decimal("0.01"))


# =============================================================================
# Adapter
# =============================================================================


class PaystackAdapter(JsonHttpClient):
    """
    Paystack REST client.

    Args:
        secret_key: Paystack secret key (Bearer token and webhook key)
        base_url: API base URL
        timeout: Request timeout in seconds
    """

    service_name = "paystack"
    error_class = PaystackError

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float | None = None,
        **kwargs,
    ):
        super().__init__(
            base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {secret_key}"},
            **kwargs,
        )
        self.secret_key = secret_key

    @classmethod
    def from_settings(cls) -> PaystackAdapter:
        return cls(
            secret_key=settings.PAYSTACK_SECRET_KEY,
            base_url=settings.PAYSTACK_BASE_URL,
            timeout=settings.PAYSTACK_TIMEOUT_SECONDS,
        )

    def _call(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Perform a request and unwrap Paystack's ``{status, message, data}`` envelope."""
        body = self.request(method, path, **kwargs)
        if not isinstance(body, dict) or not body.get("status"):
            message = body.get("message") if isinstance(body, dict) else None
            raise PaystackError(
                message or "Paystack request was not successful",
                error_code="PAYSTACK_REQUEST_FAILED",
                details={"path": path},
                retryable=False,
            )
        return body.get("data") or {}

    # =========================================================================
    # Transactions
    # =========================================================================

    def initialize_transaction(
        self,
        *,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: dict[str, Any] | None = None,
        callback_url: str | None = None,
    ) -> InitializeTransactionResult:
        """
        Start a checkout for ``amount`` (major units).

        Raises:
            PaystackError: If the gateway call fails
        """
        payload: dict[str, Any] = {
            "email": email,
            "amount": to_minor_units(amount),
            "reference": reference,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url

        data = self._call("POST", "/transaction/initialize", json=payload)
        self.get_logger().info(
            "Paystack transaction initialized",
            extra={"reference": reference, "amount": str(amount)},
        )
        return InitializeTransactionResult(
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
            reference=data.get("reference", reference),
        )

    def verify_transaction(self, reference: str) -> TransactionVerification:
        """
        Fetch the gateway's view of a transaction.

        Raises:
            PaystackError: If the gateway call fails
        """
        data = self._call("GET", f"/transaction/verify/{reference}")
        paid_at = data.get("paid_at") or data.get("paidAt")
        metadata = data.get("metadata")

        verification = TransactionVerification(
            status=data.get("status", ""),
            reference=data.get("reference", reference),
            amount=to_major_units(data.get("amount")),
            currency=data.get("currency", ""),
            channel=data.get("channel"),
            paid_at=parse_datetime(paid_at) if paid_at else None,
            gateway_response=data.get("gateway_response") or "",
            metadata=metadata if isinstance(metadata, dict) else {},
            raw=data,
        )
        self.get_logger().info(
            "Paystack transaction verified",
            extra={"reference": reference, "gateway_status": verification.status},
        )
        return verification

    # =========================================================================
    # Webhooks
    # =========================================================================

    def verify_webhook_signature(self, body: bytes, signature: str) -> bool:
        """Check ``X-Paystack-Signature`` (hex HMAC-SHA512 of the raw body)."""
        if not signature or not self.secret_key:
            return False
        expected = hmac.new(self.secret_key.encode(), body, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature)
