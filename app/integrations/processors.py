"""
Handlers for the sync queue.

SyncProcessor runs the LMS reconciliation passes and the per-user
"ensure account and enroll" job. Every handler is a no-op returning
``{"skipped": "moodle_sync_disabled"}`` while MOODLE_SYNC_ENABLED is off.

Jobs:
    INITIAL_SYNC / PERIODIC_SYNC: courses → users → enrollments → completion
    SYNC_USER_ENROLLMENT: LMS account + enrollment for one (user, course)
    FORCE_SYNC_USERS / COURSES / ENROLLMENTS: one entity family on demand
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.contrib.auth import get_user_model

from core.exceptions import NotFoundError
from core.services import BaseService
from courses.models import Course
from jobs.kinds import JobKind

if TYPE_CHECKING:
    from integrations.services import LmsEnrollmentService, MoodleSyncService
    from jobs.manager import Handler, JobContext

SYNC_DISABLED_RESULT = {"skipped": "moodle_sync_disabled"}


class SyncProcessor(BaseService):
    """
    Sync queue job handlers.

    Args:
        sync_service: Performs the reconciliation passes
        lms: Account and enrollment steps for SYNC_USER_ENROLLMENT
    """

    def __init__(self, sync_service: MoodleSyncService, lms: LmsEnrollmentService):
        self.sync_service = sync_service
        self.lms = lms

    def handlers(self) -> dict[JobKind, Handler]:
        return {
            JobKind.INITIAL_SYNC: self.initial_sync,
            JobKind.PERIODIC_SYNC: self.periodic_sync,
            JobKind.SYNC_USER_ENROLLMENT: self.sync_user_enrollment,
            JobKind.FORCE_SYNC_USERS: self.force_sync_users,
            JobKind.FORCE_SYNC_COURSES: self.force_sync_courses,
            JobKind.FORCE_SYNC_ENROLLMENTS: self.force_sync_enrollments,
        }

    @staticmethod
    def is_enabled() -> bool:
        return bool(settings.MOODLE_SYNC_ENABLED)

    def _run_full_sync(self, ctx: JobContext) -> dict[str, Any]:
        if not self.is_enabled():
            return SYNC_DISABLED_RESULT

        summaries = {
            name: summary.to_dict()
            for name, summary in self.sync_service.full_sync(
                on_pass_finished=lambda done, total: ctx.report_progress(done * 100 // total)
            ).items()
        }

        self.get_logger().info(
            f"{ctx.kind.value} finished",
            extra={"job_id": ctx.job_id, **{f"{k}_failed": v["failed"] for k, v in summaries.items()}},
        )
        return summaries

    def initial_sync(self, ctx: JobContext) -> dict[str, Any]:
        return self._run_full_sync(ctx)

    def periodic_sync(self, ctx: JobContext) -> dict[str, Any]:
        return self._run_full_sync(ctx)

    def sync_user_enrollment(self, ctx: JobContext) -> dict[str, Any]:
        """
        Ensure the user's LMS account and enroll them in the course.

        Raises:
            NotFoundError: If the user or course does not exist
        """
        if not self.is_enabled():
            return SYNC_DISABLED_RESULT

        user_id = ctx.payload["user_id"]
        course_id = ctx.payload["course_id"]

        user = get_user_model().objects.filter(pk=user_id).first()
        if user is None:
            raise NotFoundError(
                f"User {user_id} not found",
                error_code="USER_NOT_FOUND",
                details={"user_id": user_id},
            )
        course = Course.objects.filter(pk=course_id).first()
        if course is None:
            raise NotFoundError(
                f"Course {course_id} not found",
                error_code="COURSE_NOT_FOUND",
                details={"course_id": course_id},
            )

        return self.lms.enroll(user, course)

    def force_sync_users(self, ctx: JobContext) -> dict[str, Any]:
        if not self.is_enabled():
            return SYNC_DISABLED_RESULT
        return self.sync_service.sync_users().to_dict()

    def force_sync_courses(self, ctx: JobContext) -> dict[str, Any]:
        if not self.is_enabled():
            return SYNC_DISABLED_RESULT
        return self.sync_service.sync_courses().to_dict()

    def force_sync_enrollments(self, ctx: JobContext) -> dict[str, Any]:
        if not self.is_enabled():
            return SYNC_DISABLED_RESULT
        return self.sync_service.sync_enrollments().to_dict()
