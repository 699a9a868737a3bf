"""
Handlers for the email queue.

Each handler loads the entity named in its payload, renders one template and
sends one message. A missing entity raises NotFoundError (not retryable);
delivery errors propagate and are retried by the email queue policy.

Duplicate sends are prevented upstream: every email job is enqueued with a
fixed job id (``email-enrollment-{id}``, ``email-receipt-{id}``, ...).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.conf import settings

from core.exceptions import NotFoundError
from core.services import BaseService
from courses.models import Enrollment
from jobs.kinds import JobKind
from payments.models import Payment
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from jobs.manager import Handler, JobContext
    from notifications.email import EmailService


class EmailProcessor(BaseService):
    """Email queue job handlers."""

    def __init__(self, email_service: EmailService):
        self.email_service = email_service

    def handlers(self) -> dict[JobKind, Handler]:
        return {
            JobKind.SEND_ENROLLMENT_CONFIRMATION: self.send_enrollment_confirmation,
            JobKind.SEND_COURSE_COMPLETION: self.send_course_completion,
            JobKind.SEND_PAYMENT_RECEIPT: self.send_payment_receipt,
            JobKind.SEND_PAYMENT_REMINDER: self.send_payment_reminder,
        }

    # =========================================================================
    # Loaders
    # =========================================================================

    @staticmethod
    def _get_enrollment(enrollment_id: int) -> Enrollment:
        enrollment = (
            Enrollment.objects.select_related("user", "course")
            .filter(pk=enrollment_id)
            .first()
        )
        if enrollment is None:
            raise NotFoundError(
                f"Enrollment {enrollment_id} not found",
                error_code="ENROLLMENT_NOT_FOUND",
                details={"enrollment_id": enrollment_id},
            )
        return enrollment

    @staticmethod
    def _get_payment(payment_id: str) -> Payment:
        payment = (
            Payment.objects.select_related("user", "enrollment__course")
            .filter(pk=payment_id)
            .first()
        )
        if payment is None:
            raise NotFoundError(
                f"Payment {payment_id} not found",
                error_code="PAYMENT_NOT_FOUND",
                details={"payment_id": payment_id},
            )
        return payment

    def _deliver(self, ctx: JobContext, to: str, subject: str, template: str, context: dict) -> dict[str, Any]:
        ctx.report_progress(50)
        self.email_service.send(
            to=to,
            subject=subject,
            template_name=template,
            context={"lms_url": settings.MOODLE_URL, **context},
        )
        ctx.report_progress(100)
        return {"sent": True, "template": template, "to": to}

    # =========================================================================
    # Handlers
    # =========================================================================

    def send_enrollment_confirmation(self, ctx: JobContext) -> dict[str, Any]:
        enrollment = self._get_enrollment(ctx.payload["enrollment_id"])
        return self._deliver(
            ctx,
            enrollment.user.email,
            f"Welcome to {enrollment.course.title}",
            "enrollment_confirmation",
            {"user": enrollment.user, "course": enrollment.course, "enrollment": enrollment},
        )

    def send_course_completion(self, ctx: JobContext) -> dict[str, Any]:
        enrollment = self._get_enrollment(ctx.payload["enrollment_id"])
        return self._deliver(
            ctx,
            enrollment.user.email,
            f"Congratulations on completing {enrollment.course.title}!",
            "course_completion",
            {"user": enrollment.user, "course": enrollment.course, "enrollment": enrollment},
        )

    def send_payment_receipt(self, ctx: JobContext) -> dict[str, Any]:
        payment = self._get_payment(ctx.payload["payment_id"])
        course = payment.enrollment.course if payment.enrollment else None
        subject = f"Payment Receipt - {course.title}" if course else "Payment Receipt"
        return self._deliver(
            ctx,
            payment.user.email,
            subject,
            "payment_receipt",
            {"user": payment.user, "payment": payment, "course": course},
        )

    def send_payment_reminder(self, ctx: JobContext) -> dict[str, Any]:
        """Remind about an unpaid checkout; nothing is sent once it has settled."""
        payment = self._get_payment(ctx.payload["payment_id"])
        if payment.status != PaymentStatus.PENDING:
            self.get_logger().info(
                f"Payment reminder skipped, payment is {payment.status}",
                extra={"payment_id": str(payment.id), "job_id": ctx.job_id},
            )
            return {"skipped": "payment_not_pending", "status": payment.status}

        course = payment.enrollment.course if payment.enrollment else None
        return self._deliver(
            ctx,
            payment.user.email,
            "Complete your payment to access your course",
            "payment_reminder",
            {"user": payment.user, "payment": payment, "course": course},
        )
