"""
Handlers for the payment queue.

PaymentProcessor reconciles local payments with the gateway. It is the only
place that moves a Payment to SUCCESS, and the step that hands a paid
enrollment over to the enrollment queue.

Jobs:
    VERIFY_PAYMENT: Ask the gateway, transition the payment, queue enrollment
    POLL_PENDING_PAYMENTS: Re-verify stale pending payments, re-queue stalled
        enrollments of successful payments
    CLEANUP_ABANDONED_PAYMENTS: Cancel payments pending past the threshold
    RETRY_FAILED_ENROLLMENT: Re-queue enrollment completion for a paid payment
    PROCESS_WEBHOOK: Dispatch a stored WebhookEvent through the handler registry

Failure Handling:
    Gateway errors propagate as PaystackError and are retried with the
    payment queue's backoff. A missing payment is a PaymentNotFoundError,
    which parks the job immediately. The poller is the safety net for
    payments whose verification job was parked.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from django_fsm import ConcurrentTransition

from core.exceptions import NotFoundError
from core.services import BaseService
from courses.state_machines import EnrollmentPaymentStatus, EnrollmentStatus
from jobs.kinds import JobKind
from payments.exceptions import PaymentNotFoundError, PaymentNotSuccessfulError
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus
from payments.webhooks.handlers import dispatch_webhook

if TYPE_CHECKING:
    from jobs.manager import Handler, JobContext
    from jobs.queues import EmailQueue, EnrollmentQueue, PaymentQueue
    from notifications.realtime import RealtimeEmitter
    from payments.adapters import PaystackAdapter, TransactionVerification


PAYMENT_VERIFIED_EVENT = "payment:verified"
PAYMENT_FAILED_EVENT = "payment:failed"

# Gateway statuses meaning the customer may still complete the charge
IN_PROGRESS_GATEWAY_STATUSES = frozenset({"ongoing", "pending", "processing", "queued"})


class PaymentProcessor(BaseService):
    """
    Payment queue job handlers.

    Args:
        gateway: Paystack client
        payment_queue: For verification jobs queued by the poller and webhooks
        enrollment_queue: For enrollment completion after payment
        email_queue: For receipts and reminder cancellation
        realtime: Pushes payment events to the user's browser
    """

    def __init__(
        self,
        gateway: PaystackAdapter,
        payment_queue: PaymentQueue,
        enrollment_queue: EnrollmentQueue,
        email_queue: EmailQueue,
        realtime: RealtimeEmitter,
    ):
        self.gateway = gateway
        self.payment_queue = payment_queue
        self.enrollment_queue = enrollment_queue
        self.email_queue = email_queue
        self.realtime = realtime

    def handlers(self) -> dict[JobKind, Handler]:
        return {
            JobKind.VERIFY_PAYMENT: self.verify_payment,
            JobKind.POLL_PENDING_PAYMENTS: self.poll_pending_payments,
            JobKind.RETRY_FAILED_ENROLLMENT: self.retry_failed_enrollment,
            JobKind.CLEANUP_ABANDONED_PAYMENTS: self.cleanup_abandoned_payments,
            JobKind.PROCESS_WEBHOOK: self.process_webhook,
        }

    # =========================================================================
    # Loaders
    # =========================================================================

    @staticmethod
    def _get_payment(reference: str | None = None, payment_id: str | None = None) -> Payment:
        queryset = Payment.objects.select_related("enrollment")
        payment = None
        try:
            if payment_id:
                payment = queryset.filter(pk=payment_id).first()
            elif reference:
                payment = queryset.filter(reference=reference).first()
        except (ValueError, DjangoValidationError):
            payment = None

        if payment is None:
            raise PaymentNotFoundError(
                f"Payment {payment_id or reference} not found",
                details={"reference": reference, "payment_id": payment_id},
            )
        return payment

    def _emit(self, payment: Payment, event: str, message: str) -> None:
        self.realtime.emit_to_user(
            payment.user_id,
            event,
            {
                "reference": payment.reference,
                "payment_id": str(payment.id),
                "status": payment.status,
                "message": message,
            },
        )

    # =========================================================================
    # Verification
    # =========================================================================

    def verify_payment(self, ctx: JobContext) -> dict[str, Any]:
        """
        Verify a payment with the gateway and apply the outcome.

        Steps:
            1. Load the payment (missing → PaymentNotFoundError)
            2. Already successful → already_verified, no side effects
            3. Verify with the gateway (errors propagate and are retried)
            4. Transition to success or failed (conditional save)
            5. On success: queue enrollment completion and the receipt
            6. Emit payment:verified / payment:failed

        Returns:
            Dict with success, status, payment_id and reference
        """
        logger = self.get_logger()
        ctx.report_progress(10)

        payment = self._get_payment(
            reference=ctx.payload.get("reference"),
            payment_id=ctx.payload.get("payment_id"),
        )
        already_verified = {
            "success": True,
            "status": "already_verified",
            "payment_id": str(payment.id),
        }
        if payment.is_successful:
            logger.info(
                f"Payment {payment.reference} already verified",
                extra={"payment_id": str(payment.id), "reference": payment.reference},
            )
            return already_verified

        ctx.report_progress(40)
        verification = self.gateway.verify_transaction(payment.reference)
        ctx.report_progress(60)

        if verification.is_successful:
            result = self._apply_success(ctx, payment, verification)
        elif verification.status in IN_PROGRESS_GATEWAY_STATUSES:
            logger.info(
                f"Payment {payment.reference} still in progress at the gateway",
                extra={"reference": payment.reference, "gateway_status": verification.status},
            )
            result = {
                "success": False,
                "status": PaymentStatus.PENDING,
                "gateway_status": verification.status,
                "payment_id": str(payment.id),
                "reference": payment.reference,
            }
        else:
            result = self._apply_failure(ctx, payment, verification)

        ctx.report_progress(100)
        return result or already_verified

    def _apply_success(
        self,
        ctx: JobContext,
        payment: Payment,
        verification: TransactionVerification,
    ) -> dict[str, Any] | None:
        try:
            with transaction.atomic():
                payment.mark_success(
                    paid_at=verification.paid_at,
                    channel=verification.channel,
                    gateway_response=verification.raw,
                )
                payment.save()

                if payment.enrollment_id:
                    self.enrollment_queue.complete_enrollment(
                        payment.enrollment_id,
                        payment.reference,
                    )
                    self.email_queue.send_payment_receipt(payment.id)
                self.email_queue.cancel_email(self.email_queue.reminder_job_id(payment.id))
        except ConcurrentTransition:
            self.get_logger().info(
                f"Payment {payment.reference} verified concurrently",
                extra={"payment_id": str(payment.id)},
            )
            return None

        ctx.report_progress(80)
        self._emit(payment, PAYMENT_VERIFIED_EVENT, "Payment verified successfully")
        self.get_logger().info(
            f"Payment {payment.reference} verified",
            extra={
                "payment_id": str(payment.id),
                "reference": payment.reference,
                "amount": str(verification.amount),
                "channel": verification.channel,
                "enrollment_id": payment.enrollment_id,
            },
        )
        return {
            "success": True,
            "status": PaymentStatus.SUCCESS,
            "payment_id": str(payment.id),
            "reference": payment.reference,
            "enrollment_queued": bool(payment.enrollment_id),
        }

    def _apply_failure(
        self,
        ctx: JobContext,
        payment: Payment,
        verification: TransactionVerification,
    ) -> dict[str, Any] | None:
        reason = verification.gateway_response or f"Gateway status: {verification.status}"

        if payment.status == PaymentStatus.PENDING:
            try:
                with transaction.atomic():
                    payment.mark_failed(reason=reason, gateway_response=verification.raw)
                    payment.save()
            except ConcurrentTransition:
                return None

        ctx.report_progress(80)
        self._emit(payment, PAYMENT_FAILED_EVENT, reason)
        self.get_logger().warning(
            f"Payment {payment.reference} failed at the gateway",
            extra={
                "payment_id": str(payment.id),
                "reference": payment.reference,
                "gateway_status": verification.status,
            },
        )
        return {
            "success": False,
            "status": payment.status,
            "gateway_status": verification.status,
            "payment_id": str(payment.id),
            "reference": payment.reference,
            "message": reason,
        }

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def poll_pending_payments(self, ctx: JobContext) -> dict[str, Any]:
        """
        Re-verify payments still pending past the threshold.

        Also re-queues enrollment completion for successful payments whose
        enrollment is still not active past the same threshold.
        """
        older_than_minutes = int(
            ctx.payload.get("older_than_minutes") or settings.PAYMENT_POLL_THRESHOLD_MINUTES
        )
        limit = int(ctx.payload.get("limit") or settings.PAYMENT_POLL_BATCH_SIZE)
        cutoff = timezone.now() - timedelta(minutes=older_than_minutes)

        pending = list(
            Payment.objects.filter(status=PaymentStatus.PENDING, created_at__lt=cutoff)
            .order_by("created_at")[:limit]
        )
        queued = 0
        for payment in pending:
            handle = self.payment_queue.verify_payment(reference=payment.reference, priority=2)
            queued += int(handle.created)

        stalled = list(
            Payment.objects.filter(
                status=PaymentStatus.SUCCESS,
                enrollment__isnull=False,
                enrollment__enrollment_status__in=[
                    EnrollmentStatus.PENDING,
                    EnrollmentStatus.DROPPED,
                ],
                updated_at__lt=cutoff,
            ).order_by("updated_at")[:limit]
        )
        for payment in stalled:
            self.payment_queue.retry_failed_enrollment(payment.id)

        self.get_logger().info(
            "Pending payment poll finished",
            extra={"total": len(pending), "queued": queued, "stalled_enrollments": len(stalled)},
        )
        return {"total": len(pending), "queued": queued, "stalled_enrollments": len(stalled)}

    def cleanup_abandoned_payments(self, ctx: JobContext) -> dict[str, Any]:
        """Cancel payments pending past the threshold and drop their enrollments."""
        older_than_hours = int(
            ctx.payload.get("older_than_hours") or settings.PAYMENT_CLEANUP_THRESHOLD_HOURS
        )
        limit = int(ctx.payload.get("limit") or settings.PAYMENT_CLEANUP_BATCH_SIZE)
        cutoff = timezone.now() - timedelta(hours=older_than_hours)
        logger = self.get_logger()

        abandoned = list(
            Payment.objects.select_related("enrollment")
            .filter(status=PaymentStatus.PENDING, created_at__lt=cutoff)
            .order_by("created_at")[:limit]
        )
        cleaned = 0
        for payment in abandoned:
            try:
                with transaction.atomic():
                    payment.cancel(reason=f"Abandoned for more than {older_than_hours} hours")
                    payment.save()

                    enrollment = payment.enrollment
                    if enrollment and enrollment.enrollment_status == EnrollmentStatus.PENDING:
                        enrollment.drop()
                        if enrollment.payment_status == EnrollmentPaymentStatus.PENDING:
                            enrollment.fail_payment()
                        enrollment.save()

                    self.email_queue.cancel_email(self.email_queue.reminder_job_id(payment.id))
                cleaned += 1
            except ConcurrentTransition:
                logger.info(
                    f"Payment {payment.reference} changed during cleanup, skipping",
                    extra={"payment_id": str(payment.id)},
                )

        logger.info(
            "Abandoned payment cleanup finished",
            extra={"total": len(abandoned), "cleaned": cleaned},
        )
        return {"total": len(abandoned), "cleaned": cleaned}

    def retry_failed_enrollment(self, ctx: JobContext) -> dict[str, Any]:
        """
        Hand a paid payment's enrollment back to the enrollment queue.

        Raises:
            PaymentNotFoundError: If the payment does not exist
            PaymentNotSuccessfulError: If the payment is not successful
        """
        payment = self._get_payment(payment_id=ctx.payload.get("payment_id"))
        if not payment.is_successful:
            raise PaymentNotSuccessfulError(
                f"Payment {payment.reference} is {payment.status}",
                details={"payment_id": str(payment.id), "status": payment.status},
            )
        if not payment.enrollment_id:
            return {"skipped": "no_enrollment", "payment_id": str(payment.id)}

        handle = self.enrollment_queue.complete_enrollment(payment.enrollment_id, payment.reference)
        return {
            "payment_id": str(payment.id),
            "enrollment_id": payment.enrollment_id,
            "job_id": handle.job_id,
            "queued": handle.created,
        }

    # =========================================================================
    # Webhooks
    # =========================================================================

    def process_webhook(self, ctx: JobContext) -> dict[str, Any]:
        """
        Dispatch a stored webhook event and record the outcome on it.

        Handler failures reported as ServiceResult mark the event failed
        without retrying the job; exceptions mark it failed and propagate.
        """
        webhook_event_id = ctx.payload.get("webhook_event_id")
        try:
            webhook_event = WebhookEvent.objects.filter(pk=webhook_event_id).first()
        except (ValueError, DjangoValidationError):
            webhook_event = None
        if webhook_event is None:
            raise NotFoundError(
                f"WebhookEvent {webhook_event_id} not found",
                error_code="WEBHOOK_EVENT_NOT_FOUND",
                details={"webhook_event_id": webhook_event_id},
            )
        if webhook_event.is_processed:
            return {"status": "already_processed", "event_key": webhook_event.event_key}

        webhook_event.mark_processing()
        webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

        try:
            result = dispatch_webhook(webhook_event, self.payment_queue)
        except Exception as e:
            webhook_event.mark_failed(str(e))
            webhook_event.save(update_fields=["status", "error_message", "updated_at"])
            raise

        if result:
            webhook_event.mark_processed()
            webhook_event.save(
                update_fields=["status", "processed_at", "error_message", "updated_at"]
            )
            return {
                "status": "processed",
                "event_type": webhook_event.event_type,
                "result": result.data,
            }

        webhook_event.mark_failed(result.error or "Webhook handler failed")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        return {
            "status": "failed",
            "event_type": webhook_event.event_type,
            "error": result.error,
            "error_code": result.error_code,
        }
