"""
Handlers for the enrollment queue.

EnrollmentProcessor turns a confirmed payment into an active enrollment and
keeps the enrollment in step with the LMS and the incubator.

Jobs:
    COMPLETE_ENROLLMENT: LMS account + LMS enrollment + activation, then
        progress initialization, incubator sync and confirmation email
    SYNC_MOODLE_ENROLLMENT: LMS account + LMS enrollment only (recovery)
    INITIALIZE_PROGRESS: One not_started StudentProgress per module
    CALCULATE_PROGRESS: Recompute progress; completes the enrollment at 100
    CREATE_MOODLE_ACCOUNT / CREATE_INCUBATOR_ACCOUNT: Write-once account ids
    SYNC_INCUBATOR_PROFILE: Create or update the incubator user
    SYNC_COURSE_COMPLETION: Push a completed course to the incubator

Idempotency:
    Every handler can be redelivered. Activation and completion go through
    django-fsm transitions saved with ConcurrentTransitionMixin; a lost race
    ends as ``already_completed`` without follow-on jobs. Follow-on jobs use
    fixed job ids and are published only after the transition commits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from django_fsm import ConcurrentTransition

from core.exceptions import ConflictError, NotFoundError
from core.services import BaseService
from courses.models import Enrollment, StudentProgress
from courses.state_machines import (
    EnrollmentPaymentStatus,
    EnrollmentStatus,
    ProgressStatus,
)
from jobs.kinds import JobKind

if TYPE_CHECKING:
    from authentication.models import User
    from integrations.adapters import IncubatorAdapter
    from integrations.services import LmsEnrollmentService
    from jobs.manager import Handler, JobContext
    from jobs.queues import EmailQueue, EnrollmentQueue
    from notifications.realtime import RealtimeEmitter


MOODLE_SYNCED_EVENT = "enrollment:moodle-synced"
INCUBATOR_NOT_CONFIGURED_RESULT = {"skipped": "incubator_not_configured"}


def calculate_percentage(completed: int, total: int) -> int:
    """Completed share of modules, rounded half up. 0 for a course without modules."""
    if total <= 0:
        return 0
    return min(100, (200 * completed + total) // (2 * total))


class EnrollmentProcessor(BaseService):
    """
    Enrollment queue job handlers.

    Args:
        lms: LMS account/enrollment steps
        incubator: Incubator client
        enrollment_queue: For progress and incubator follow-on jobs
        email_queue: For confirmation and completion emails
        realtime: Pushes events to the user's browser
    """

    def __init__(
        self,
        lms: LmsEnrollmentService,
        incubator: IncubatorAdapter,
        enrollment_queue: EnrollmentQueue,
        email_queue: EmailQueue,
        realtime: RealtimeEmitter,
    ):
        self.lms = lms
        self.incubator = incubator
        self.enrollment_queue = enrollment_queue
        self.email_queue = email_queue
        self.realtime = realtime

    def handlers(self) -> dict[JobKind, Handler]:
        return {
            JobKind.COMPLETE_ENROLLMENT: self.complete_enrollment,
            JobKind.SYNC_MOODLE_ENROLLMENT: self.sync_moodle_enrollment,
            JobKind.SYNC_INCUBATOR_PROFILE: self.sync_incubator_profile,
            JobKind.CREATE_MOODLE_ACCOUNT: self.create_moodle_account,
            JobKind.CREATE_INCUBATOR_ACCOUNT: self.create_incubator_account,
            JobKind.INITIALIZE_PROGRESS: self.initialize_progress,
            JobKind.CALCULATE_PROGRESS: self.calculate_progress,
            JobKind.SYNC_COURSE_COMPLETION: self.sync_course_completion,
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
    def _get_user(user_id: int) -> User:
        user = get_user_model().objects.filter(pk=user_id).first()
        if user is None:
            raise NotFoundError(
                f"User {user_id} not found",
                error_code="USER_NOT_FOUND",
                details={"user_id": user_id},
            )
        return user

    def _emit_moodle_synced(self, enrollment: Enrollment, outcome: dict[str, Any]) -> None:
        status = outcome.get("status")
        if status == "enrolled":
            message = f"You now have access to {enrollment.course.title} on the LMS"
        else:
            message = f"{enrollment.course.title} has no LMS course to sync"
        self.realtime.emit_to_user(
            enrollment.user_id,
            MOODLE_SYNCED_EVENT,
            {
                "course_id": enrollment.course_id,
                "moodle_course_id": enrollment.course.moodle_course_id,
                "status": status,
                "message": message,
            },
        )

    # =========================================================================
    # Activation
    # =========================================================================

    def complete_enrollment(self, ctx: JobContext) -> dict[str, Any]:
        """
        Activate an enrollment after a successful payment.

        Steps:
            1. Return already_completed if the enrollment is active
            2. Ensure the LMS account and enroll (retryable on LMS errors)
            3. Transition to enrolled / payment completed (conditional save)
            4. On commit: initialize progress, sync incubator, confirmation email
            5. Emit enrollment:moodle-synced

        Raises:
            NotFoundError: If the enrollment does not exist
            MoodleError: If an LMS call fails
        """
        enrollment_id = ctx.payload["enrollment_id"]
        payment_reference = ctx.payload.get("payment_reference")
        logger = self.get_logger()

        enrollment = self._get_enrollment(enrollment_id)
        if enrollment.is_active:
            logger.info(
                f"Enrollment {enrollment_id} already active",
                extra={"enrollment_id": enrollment_id, "status": enrollment.enrollment_status},
            )
            return {"status": "already_completed", "enrollment_id": enrollment_id}

        ctx.report_progress(10)
        lms_outcome = self.lms.enroll(enrollment.user, enrollment.course)
        ctx.report_progress(60)

        try:
            with transaction.atomic():
                enrollment.activate(payment_reference=payment_reference)
                if enrollment.payment_status != EnrollmentPaymentStatus.COMPLETED:
                    enrollment.confirm_payment()
                enrollment.save()

                self.enrollment_queue.initialize_progress(enrollment.pk)
                self.enrollment_queue.sync_incubator_profile(enrollment.user_id)
                self.email_queue.send_enrollment_confirmation(enrollment.pk)
        except ConcurrentTransition:
            logger.info(
                f"Enrollment {enrollment_id} activated concurrently",
                extra={"enrollment_id": enrollment_id},
            )
            return {"status": "already_completed", "enrollment_id": enrollment_id}

        ctx.report_progress(90)
        self._emit_moodle_synced(enrollment, lms_outcome)

        logger.info(
            f"Enrollment {enrollment_id} completed",
            extra={
                "enrollment_id": enrollment_id,
                "user_id": enrollment.user_id,
                "course_id": enrollment.course_id,
                "lms_status": lms_outcome.get("status"),
            },
        )
        return {
            "status": "enrolled",
            "enrollment_id": enrollment_id,
            "lms": lms_outcome,
        }

    def sync_moodle_enrollment(self, ctx: JobContext) -> dict[str, Any]:
        """LMS account and enrollment for an existing enrollment."""
        enrollment = self._get_enrollment(ctx.payload["enrollment_id"])
        outcome = self.lms.enroll(enrollment.user, enrollment.course)
        Enrollment.objects.filter(pk=enrollment.pk).update(last_synced_at=timezone.now())
        self._emit_moodle_synced(enrollment, outcome)
        return outcome

    # =========================================================================
    # Progress
    # =========================================================================

    def initialize_progress(self, ctx: JobContext) -> dict[str, Any]:
        """Create a not_started progress row for every module that lacks one."""
        enrollment = self._get_enrollment(ctx.payload["enrollment_id"])
        modules = enrollment.course.modules.order_by("order_index")

        created_count = 0
        for module in modules:
            _, created = StudentProgress.objects.get_or_create(
                enrollment=enrollment,
                module=module,
                defaults={"status": ProgressStatus.NOT_STARTED},
            )
            created_count += int(created)

        return {
            "enrollment_id": enrollment.pk,
            "modules": len(modules),
            "created": created_count,
        }

    def calculate_progress(self, ctx: JobContext) -> dict[str, Any]:
        """
        Recompute progress from completed modules.

        Progress never decreases here. Reaching 100 completes the enrollment,
        then queues the completion email and the incubator completion sync.

        Raises:
            NotFoundError: If the enrollment does not exist
            ConflictError: If the enrollment is not active
        """
        enrollment_id = ctx.payload["enrollment_id"]
        enrollment = self._get_enrollment(enrollment_id)
        now = timezone.now()

        if enrollment.enrollment_status == EnrollmentStatus.COMPLETED:
            Enrollment.objects.filter(pk=enrollment.pk).update(last_accessed=now)
            return {
                "enrollment_id": enrollment_id,
                "progress_percentage": enrollment.progress_percentage,
                "status": EnrollmentStatus.COMPLETED,
                "completed_now": False,
            }
        if enrollment.enrollment_status != EnrollmentStatus.ENROLLED:
            raise ConflictError(
                f"Enrollment {enrollment_id} is not active",
                error_code="ENROLLMENT_NOT_ACTIVE",
                details={"status": enrollment.enrollment_status},
            )

        total = enrollment.course.modules.count()
        completed = StudentProgress.objects.filter(
            enrollment=enrollment,
            status=ProgressStatus.COMPLETED,
        ).count()
        percentage = max(enrollment.progress_percentage, calculate_percentage(completed, total))

        completed_now = False
        try:
            with transaction.atomic():
                enrollment.last_accessed = now
                if percentage >= 100:
                    enrollment.complete()
                    completed_now = True
                else:
                    enrollment.progress_percentage = percentage
                enrollment.save()

                if completed_now:
                    self.email_queue.send_course_completion(enrollment.pk)
                    self.enrollment_queue.sync_course_completion(enrollment.pk)
        except ConcurrentTransition:
            enrollment.refresh_from_db()
            return {
                "enrollment_id": enrollment_id,
                "progress_percentage": enrollment.progress_percentage,
                "status": enrollment.enrollment_status,
                "completed_now": False,
            }

        if completed_now:
            self.get_logger().info(
                f"Enrollment {enrollment_id} completed the course",
                extra={"enrollment_id": enrollment_id, "course_id": enrollment.course_id},
            )
        return {
            "enrollment_id": enrollment_id,
            "progress_percentage": enrollment.progress_percentage,
            "completed_modules": completed,
            "total_modules": total,
            "status": enrollment.enrollment_status,
            "completed_now": completed_now,
        }

    # =========================================================================
    # External accounts
    # =========================================================================

    def create_moodle_account(self, ctx: JobContext) -> dict[str, Any]:
        user = self._get_user(ctx.payload["user_id"])
        account = self.lms.ensure_account(user)
        return {"already_exists": account["already_exists"], "id": account["moodle_user_id"]}

    def _create_incubator_user(self, user: User) -> bool:
        incubator_id = self.incubator.create_user(
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            central_user_id=user.pk,
        )
        return user.link_incubator_account(incubator_id)

    def create_incubator_account(self, ctx: JobContext) -> dict[str, Any]:
        user = self._get_user(ctx.payload["user_id"])
        if user.incubator_user_id:
            return {"already_exists": True, "id": user.incubator_user_id}
        if not self.incubator.is_configured:
            return INCUBATOR_NOT_CONFIGURED_RESULT

        stored = self._create_incubator_user(user)
        return {"already_exists": not stored, "id": user.incubator_user_id}

    def sync_incubator_profile(self, ctx: JobContext) -> dict[str, Any]:
        """Create the incubator user if missing, otherwise push profile fields."""
        user = self._get_user(ctx.payload["user_id"])
        if not self.incubator.is_configured:
            return INCUBATOR_NOT_CONFIGURED_RESULT

        if not user.incubator_user_id:
            self._create_incubator_user(user)
            return {"action": "created", "id": user.incubator_user_id}

        self.incubator.update_user_profile(
            user.incubator_user_id,
            {
                "email": user.email,
                "firstName": user.first_name,
                "lastName": user.last_name,
            },
        )
        return {"action": "updated", "id": user.incubator_user_id}

    def sync_course_completion(self, ctx: JobContext) -> dict[str, Any]:
        enrollment = self._get_enrollment(ctx.payload["enrollment_id"])
        user = enrollment.user
        if not self.incubator.is_configured:
            return INCUBATOR_NOT_CONFIGURED_RESULT
        if not user.incubator_user_id:
            return {"skipped": "no_incubator_account"}

        self.incubator.sync_course_completion(
            user.incubator_user_id,
            enrollment.course,
            {
                "completed_at": enrollment.completed_at,
                "progress_percentage": enrollment.progress_percentage,
            },
        )
        return {"synced": True, "enrollment_id": enrollment.pk}
