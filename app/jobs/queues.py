"""
Typed façades over the QueueManager, one per business area.

Processors and views enqueue work through these classes instead of calling
QueueManager.enqueue() with raw kinds and payloads. Each façade fixes the
job ids, priorities and attempt counts of its jobs; the fixed job ids are
what keep a re-executed step from producing a second email or a second
enrollment completion.

Usage:
    from jobs.runtime import get_runtime

    runtime = get_runtime()
    runtime.payments.verify_payment(reference="abc123", priority=1)
    runtime.emails.send_payment_reminder(payment_id, delay=timedelta(hours=24))
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Iterable

from django.conf import settings

from core.exceptions import ValidationError
from jobs.config import BackoffPolicy
from jobs.kinds import BackoffType, JobKind, QueueName
from jobs.manager import JobOptions

if TYPE_CHECKING:
    from jobs.manager import JobHandle, QueueManager


class _QueueFacade:
    """Shared plumbing: holds the manager and exposes job lookup."""

    def __init__(self, manager: QueueManager):
        self.manager = manager

    def _enqueue(
        self,
        kind: JobKind,
        payload: dict[str, Any],
        **options: Any,
    ) -> JobHandle:
        return self.manager.enqueue(kind, payload, JobOptions(**options))

    def get_job_status(self, job_id: str) -> dict[str, Any] | None:
        return self.manager.get_job_status(job_id)

    def cancel_job(self, job_id: str) -> bool:
        return self.manager.cancel(job_id)


# =============================================================================
# Payment Queue
# =============================================================================


class PaymentQueue(_QueueFacade):
    """Payment verification, reconciliation and webhook jobs."""

    POLL_JOB_ID = "poll-pending-payments"
    CLEANUP_JOB_ID = "cleanup-abandoned-payments"
    POLL_CRON = "*/15 * * * *"
    CLEANUP_CRON = "0 2 * * *"

    def verify_payment(
        self,
        reference: str | None = None,
        payment_id: str | None = None,
        priority: int = 2,
    ) -> JobHandle:
        """
        Verify a payment with the gateway.

        Raises:
            ValidationError: If neither reference nor payment_id is given
        """
        if not reference and not payment_id:
            raise ValidationError(
                "Either reference or payment_id is required",
                error_code="MISSING_PAYMENT_IDENTIFIER",
            )
        key = reference or payment_id
        payload = {"reference": reference, "payment_id": str(payment_id) if payment_id else None}
        return self._enqueue(
            JobKind.VERIFY_PAYMENT,
            payload,
            priority=priority,
            job_id=f"verify-payment-{key}",
        )

    def verify_payment_delayed(
        self,
        reference: str,
        delay: float | timedelta = timedelta(minutes=5),
    ) -> JobHandle:
        """Verify a payment later, in case neither callback nor webhook arrives."""
        return self._enqueue(
            JobKind.VERIFY_PAYMENT,
            {"reference": reference, "payment_id": None},
            priority=3,
            delay=delay,
            job_id=f"verify-payment-{reference}",
        )

    def process_webhook(self, webhook_event_id: str) -> JobHandle:
        return self._enqueue(
            JobKind.PROCESS_WEBHOOK,
            {"webhook_event_id": str(webhook_event_id)},
            priority=1,
            job_id=f"process-webhook-{webhook_event_id}",
        )

    def retry_failed_enrollment(self, payment_id: str) -> JobHandle:
        return self._enqueue(
            JobKind.RETRY_FAILED_ENROLLMENT,
            {"payment_id": str(payment_id)},
            priority=2,
            job_id=f"retry-failed-enrollment-{payment_id}",
        )

    def poll_pending_payments(
        self,
        older_than_minutes: int | None = None,
        limit: int | None = None,
    ) -> JobHandle:
        return self._enqueue(
            JobKind.POLL_PENDING_PAYMENTS,
            {
                "older_than_minutes": older_than_minutes
                or settings.PAYMENT_POLL_THRESHOLD_MINUTES,
                "limit": limit or settings.PAYMENT_POLL_BATCH_SIZE,
            },
            priority=5,
            job_id=self.POLL_JOB_ID,
        )

    def cleanup_abandoned_payments(
        self,
        older_than_hours: int | None = None,
        limit: int | None = None,
    ) -> JobHandle:
        return self._enqueue(
            JobKind.CLEANUP_ABANDONED_PAYMENTS,
            {
                "older_than_hours": older_than_hours
                or settings.PAYMENT_CLEANUP_THRESHOLD_HOURS,
                "limit": limit or settings.PAYMENT_CLEANUP_BATCH_SIZE,
            },
            priority=10,
            job_id=self.CLEANUP_JOB_ID,
        )

    def schedule_recurring(self) -> None:
        """Install the poller and cleanup schedules."""
        self.manager.add_repeatable(
            JobKind.POLL_PENDING_PAYMENTS,
            {
                "older_than_minutes": settings.PAYMENT_POLL_THRESHOLD_MINUTES,
                "limit": settings.PAYMENT_POLL_BATCH_SIZE,
            },
            job_id=self.POLL_JOB_ID,
            cron=self.POLL_CRON,
            priority=5,
        )
        self.manager.add_repeatable(
            JobKind.CLEANUP_ABANDONED_PAYMENTS,
            {
                "older_than_hours": settings.PAYMENT_CLEANUP_THRESHOLD_HOURS,
                "limit": settings.PAYMENT_CLEANUP_BATCH_SIZE,
            },
            job_id=self.CLEANUP_JOB_ID,
            cron=self.CLEANUP_CRON,
            priority=10,
        )


# =============================================================================
# Enrollment Queue
# =============================================================================


class EnrollmentQueue(_QueueFacade):
    """Enrollment activation, progress and external account jobs."""

    def complete_enrollment(self, enrollment_id: int, payment_reference: str) -> JobHandle:
        return self._enqueue(
            JobKind.COMPLETE_ENROLLMENT,
            {"enrollment_id": enrollment_id, "payment_reference": payment_reference},
            priority=1,
            job_id=f"complete-enrollment-{enrollment_id}",
        )

    def sync_moodle_enrollment(self, enrollment_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.SYNC_MOODLE_ENROLLMENT,
            {"enrollment_id": enrollment_id},
            priority=2,
            job_id=f"sync-moodle-enrollment-{enrollment_id}",
        )

    def sync_incubator_profile(self, user_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.SYNC_INCUBATOR_PROFILE,
            {"user_id": user_id},
            priority=3,
        )

    def create_moodle_account(self, user_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.CREATE_MOODLE_ACCOUNT,
            {"user_id": user_id},
            priority=2,
            attempts=5,
            job_id=f"create-moodle-account-{user_id}",
        )

    def create_incubator_account(self, user_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.CREATE_INCUBATOR_ACCOUNT,
            {"user_id": user_id},
            priority=3,
            attempts=5,
            job_id=f"create-incubator-account-{user_id}",
        )

    def initialize_progress(self, enrollment_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.INITIALIZE_PROGRESS,
            {"enrollment_id": enrollment_id},
            priority=2,
            job_id=f"initialize-progress-{enrollment_id}",
        )

    def calculate_progress(self, enrollment_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.CALCULATE_PROGRESS,
            {"enrollment_id": enrollment_id},
            priority=4,
        )

    def sync_course_completion(self, enrollment_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.SYNC_COURSE_COMPLETION,
            {"enrollment_id": enrollment_id},
            priority=3,
            job_id=f"sync-course-completion-{enrollment_id}",
        )


# =============================================================================
# Sync Queue
# =============================================================================


FORCE_SYNC_KINDS = {
    "users": JobKind.FORCE_SYNC_USERS,
    "courses": JobKind.FORCE_SYNC_COURSES,
    "enrollments": JobKind.FORCE_SYNC_ENROLLMENTS,
}


class SyncQueue(_QueueFacade):
    """LMS reconciliation jobs."""

    INITIAL_SYNC_JOB_ID = "initial-sync"
    PERIODIC_SYNC_JOB_ID = "periodic-sync"

    def initial_sync(self) -> JobHandle:
        return self._enqueue(
            JobKind.INITIAL_SYNC,
            {},
            priority=1,
            job_id=self.INITIAL_SYNC_JOB_ID,
        )

    def schedule_periodic_sync(self, every: float | timedelta | None = None) -> None:
        every = every or settings.MOODLE_SYNC_INTERVAL_SECONDS
        self.manager.add_repeatable(
            JobKind.PERIODIC_SYNC,
            {},
            job_id=self.PERIODIC_SYNC_JOB_ID,
            every=every,
        )

    def sync_user_enrollment(self, user_id: int, course_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.SYNC_USER_ENROLLMENT,
            {"user_id": user_id, "course_id": course_id},
            priority=8,
            job_id=f"sync-user-enrollment-{user_id}-{course_id}",
        )

    def force_sync(self, kinds: Iterable[str]) -> list[JobHandle]:
        """
        Re-run selected sync passes ("users", "courses", "enrollments").

        Raises:
            ValidationError: For an unknown entity family
        """
        handles = []
        for name in kinds:
            kind = FORCE_SYNC_KINDS.get(name)
            if kind is None:
                raise ValidationError(
                    f"Unknown sync kind: {name}",
                    error_code="INVALID_SYNC_KIND",
                    details={"allowed": sorted(FORCE_SYNC_KINDS)},
                )
            handles.append(
                self._enqueue(
                    kind,
                    {},
                    priority=6,
                    backoff=BackoffPolicy(BackoffType.EXPONENTIAL, 10000),
                    job_id=kind.value,
                )
            )
        return handles

    def get_stats(self) -> dict[str, Any]:
        return self.manager.get_queue_stats(QueueName.SYNC)

    def clean_old_jobs(self) -> dict[str, int]:
        return {
            "completed": self.manager.clean_queue(
                QueueName.SYNC,
                timedelta(hours=settings.JOB_RETENTION_COMPLETED_HOURS),
            ),
            "failed": self.manager.clean_queue(
                QueueName.SYNC,
                timedelta(days=settings.JOB_RETENTION_FAILED_DAYS),
                status="failed",
            ),
        }


# =============================================================================
# Email Queue
# =============================================================================


class EmailQueue(_QueueFacade):
    """Transactional email jobs."""

    def send_enrollment_confirmation(self, enrollment_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.SEND_ENROLLMENT_CONFIRMATION,
            {"enrollment_id": enrollment_id},
            job_id=f"email-enrollment-{enrollment_id}",
            once=True,
        )

    def send_course_completion(self, enrollment_id: int) -> JobHandle:
        return self._enqueue(
            JobKind.SEND_COURSE_COMPLETION,
            {"enrollment_id": enrollment_id},
            job_id=f"email-completion-{enrollment_id}",
            once=True,
        )

    def send_payment_receipt(self, payment_id: str) -> JobHandle:
        return self._enqueue(
            JobKind.SEND_PAYMENT_RECEIPT,
            {"payment_id": str(payment_id)},
            job_id=f"email-receipt-{payment_id}",
            once=True,
        )

    def send_payment_reminder(
        self,
        payment_id: str,
        delay: float | timedelta = timedelta(hours=24),
    ) -> JobHandle:
        """Schedule a reminder; cancel it with cancel_email() once paid."""
        return self._enqueue(
            JobKind.SEND_PAYMENT_REMINDER,
            {"payment_id": str(payment_id)},
            priority=5,
            delay=delay,
            job_id=self.reminder_job_id(payment_id),
            once=True,
        )

    @staticmethod
    def reminder_job_id(payment_id: str) -> str:
        return f"email-reminder-{payment_id}"

    def cancel_email(self, job_id: str) -> bool:
        return self.manager.cancel(job_id)
