"""
Payment model for Paystack charges.

A Payment is created by checkout with a unique gateway reference and stays
pending until the verification job, a webhook or the cleanup job moves it.

Usage:
    from payments.models import Payment

    payment = Payment.objects.get(reference="abc123")
    payment.mark_success(
        paid_at=verification["paid_at"],
        channel=verification["channel"],
        gateway_response=verification,
    )
    payment.save()  # conditional on the persisted status
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentStatus


class Payment(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, BaseModel):
    """
    A course payment made through the gateway.

    State Flow:
        PENDING -> SUCCESS / FAILED / CANCELLED
        FAILED / CANCELLED -> SUCCESS (late confirmation)

    Fields:
        user: Paying user
        enrollment: Enrollment the payment is for (optional)
        amount: Major units (e.g. 499.00)
        reference: Unique gateway transaction reference
        status: Current FSM state
        payment_method: Gateway channel (card, mobile_money, ...)
        paid_at: Gateway-reported payment time
        gateway_response: Last verification payload
        metadata: Checkout metadata
        failure_reason: Why the payment failed or was cancelled

    Note:
        Saves are conditional on the status the instance was loaded with
        (ConcurrentTransitionMixin), so two workers verifying the same
        payment cannot both apply a transition.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="User making the payment",
    )

    enrollment = models.ForeignKey(
        "courses.Enrollment",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payments",
        help_text="Enrollment this payment is for",
    )

    # ==========================================================================
    # Amount & Reference
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Payment amount in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="GHS",
        help_text="ISO 4217 currency code",
    )

    reference = models.CharField(
        max_length=100,
        unique=True,
        help_text="Gateway transaction reference",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    payment_method = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Gateway channel used for the charge",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the gateway recorded the payment",
    )

    # ==========================================================================
    # Gateway Data
    # ==========================================================================

    gateway_response = models.JSONField(
        default=dict,
        blank=True,
        help_text="Last verification response from the gateway",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata from checkout",
    )

    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Reason if the payment failed or was cancelled",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["status", "created_at"], name="payments_pa_status_7f2c1e_idx"),
            models.Index(fields=["user", "status"], name="payments_pa_user_id_4b9d0a_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(amount__gte=0),
                name="payment_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.reference}, {self.status}, {self.amount} {self.currency})"

    @property
    def is_successful(self) -> bool:
        return self.status == PaymentStatus.SUCCESS

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=[PaymentStatus.PENDING, PaymentStatus.FAILED, PaymentStatus.CANCELLED],
        target=PaymentStatus.SUCCESS,
    )
    def mark_success(self, paid_at=None, channel: str | None = None, gateway_response=None):
        """
        Record a confirmed charge.

        Transition: PENDING/FAILED/CANCELLED -> SUCCESS
        """
        self.paid_at = paid_at or timezone.now()
        self.payment_method = channel or self.payment_method
        if gateway_response is not None:
            self.gateway_response = gateway_response
        self.failure_reason = None

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def mark_failed(self, reason: str = "", gateway_response=None):
        """
        Record a failed charge.

        Transition: PENDING -> FAILED
        """
        self.failure_reason = reason or "Payment failed"
        if gateway_response is not None:
            self.gateway_response = gateway_response

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.CANCELLED,
    )
    def cancel(self, reason: str = ""):
        """
        Abandon a checkout that never completed.

        Transition: PENDING -> CANCELLED
        """
        self.failure_reason = reason or "Payment abandoned"
