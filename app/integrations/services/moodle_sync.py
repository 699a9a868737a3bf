"""
Reconciliation of portal tables with the Moodle LMS.

MoodleSyncService reads courses, users, enrollments and completion status
from Moodle and writes only portal tables. Each pass handles every entity in
its own savepoint: one bad record is logged and counted, the rest of the pass
continues. Failing to fetch the entity list itself propagates, so the job is
retried.

Pass order matters for a full sync: courses → users → enrollments →
completion (enrollments need both sides mapped, completion needs
enrollments).

Role mapping (Moodle shortname → portal role):
    student                     → student
    editingteacher, teacher     → teacher
    manager, coursecreator      → admin
    guest, anything else        → student

Usage:
    from integrations.services import MoodleSyncService

    service = MoodleSyncService(MoodleAdapter.from_settings())
    summaries = service.full_sync()
    summaries["courses"].to_dict()
    # {"synced": 12, "created": 1, "updated": 2, "failed": 0, "skipped": 0}
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING, Any, Callable

from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone
from django.utils.html import strip_tags

from django_fsm import ConcurrentTransition

from authentication.models import UserRole
from core.services import BaseService
from courses.models import Course, Enrollment
from courses.state_machines import (
    CourseStatus,
    EnrollmentPaymentStatus,
    EnrollmentStatus,
)

if TYPE_CHECKING:
    from authentication.models import User
    from integrations.adapters import MoodleAdapter


MOODLE_ROLE_MAP = {
    "student": UserRole.STUDENT,
    "editingteacher": UserRole.TEACHER,
    "teacher": UserRole.TEACHER,
    "manager": UserRole.ADMIN,
    "coursecreator": UserRole.ADMIN,
    "guest": UserRole.STUDENT,
}


def map_moodle_role(roles: list[dict[str, Any]] | None) -> str:
    """Portal role for a Moodle user's first course role."""
    if not roles:
        return UserRole.STUDENT
    return MOODLE_ROLE_MAP.get(roles[0].get("shortname"), UserRole.STUDENT)


@dataclass
class SyncSummary:
    """Counters for one sync pass."""

    synced: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    skipped: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


class MoodleSyncService(BaseService):
    """
    Pull LMS state into the portal.

    Args:
        moodle: Moodle client
    """

    def __init__(self, moodle: MoodleAdapter):
        self.moodle = moodle

    def full_sync(
        self, on_pass_finished: Callable[[int, int], None] | None = None
    ) -> dict[str, SyncSummary]:
        """
        Run every pass in dependency order.

        Args:
            on_pass_finished: Called with (passes done, total passes)
                after each pass
        """
        passes = (
            ("courses", self.sync_courses),
            ("users", self.sync_users),
            ("enrollments", self.sync_enrollments),
            ("completion", self.sync_completion),
        )
        summaries = {}
        for index, (name, run_pass) in enumerate(passes, start=1):
            summaries[name] = run_pass()
            if on_pass_finished is not None:
                on_pass_finished(index, len(passes))
        return summaries

    # =========================================================================
    # Courses
    # =========================================================================

    def sync_courses(self) -> SyncSummary:
        """Create missing courses and update drifted titles and summaries."""
        summary = SyncSummary()
        logger = self.get_logger()

        for moodle_course in self.moodle.get_courses():
            try:
                with transaction.atomic():
                    created, updated = self._sync_course(moodle_course)
                summary.synced += 1
                summary.created += int(created)
                summary.updated += int(updated)
            except Exception as e:
                summary.failed += 1
                logger.error(
                    f"Failed to sync Moodle course {moodle_course.get('id')}: {e}",
                    extra={"moodle_course_id": moodle_course.get("id")},
                    exc_info=True,
                )

        logger.info("Course sync finished", extra={"summary": summary.to_dict()})
        return summary

    def _sync_course(self, moodle_course: dict[str, Any]) -> tuple[bool, bool]:
        now = timezone.now()
        title = moodle_course.get("fullname") or moodle_course.get("shortname") or ""
        short_name = moodle_course.get("shortname") or ""
        description = strip_tags(moodle_course.get("summary") or "").strip()

        course = Course.objects.filter(moodle_course_id=moodle_course["id"]).first()
        if course is None:
            Course.objects.create(
                moodle_course_id=moodle_course["id"],
                title=title,
                short_name=short_name,
                short_description=description[:500],
                description=description,
                status=CourseStatus.ACTIVE,
                price=0,
                currency="GHS",
                last_synced_at=now,
            )
            return True, False

        changed = False
        for field_name, value in (
            ("title", title),
            ("short_name", short_name),
            ("description", description),
        ):
            if value and getattr(course, field_name) != value:
                setattr(course, field_name, value)
                changed = True
        course.last_synced_at = now
        course.save()
        return False, changed

    # =========================================================================
    # Users
    # =========================================================================

    def sync_users(self) -> SyncSummary:
        """
        Match manual-auth LMS users to portal users.

        Matching is by moodle_user_id, then by email (which links the
        account). Unmatched users are created as students without a usable
        password.
        """
        summary = SyncSummary()
        logger = self.get_logger()

        for moodle_user in self.moodle.get_users():
            if not moodle_user.get("email"):
                summary.skipped += 1
                continue
            try:
                with transaction.atomic():
                    _, created, updated = self._sync_user(moodle_user)
                summary.synced += 1
                summary.created += int(created)
                summary.updated += int(updated)
            except Exception as e:
                summary.failed += 1
                logger.error(
                    f"Failed to sync Moodle user {moodle_user.get('id')}: {e}",
                    extra={"moodle_user_id": moodle_user.get("id")},
                    exc_info=True,
                )

        logger.info("User sync finished", extra={"summary": summary.to_dict()})
        return summary

    def _sync_user(
        self,
        moodle_user: dict[str, Any],
        role: str = UserRole.STUDENT,
    ) -> tuple[User, bool, bool]:
        """Find, link or create the portal user. Returns (user, created, updated)."""
        UserModel = get_user_model()
        now = timezone.now()
        moodle_id = moodle_user["id"]
        email = moodle_user.get("email", "")

        user = UserModel.objects.filter(moodle_user_id=moodle_id).first()
        if user is None and email:
            user = UserModel.objects.filter(email__iexact=email).first()

        if user is None:
            user = UserModel.objects.create_user(
                email=email,
                first_name=moodle_user.get("firstname", ""),
                last_name=moodle_user.get("lastname", ""),
                role=role,
                moodle_user_id=moodle_id,
                last_synced_at=now,
            )
            return user, True, False

        changed = False
        if user.moodle_user_id is None:
            user.moodle_user_id = moodle_id
            changed = True
        for field_name, value in (
            ("first_name", moodle_user.get("firstname")),
            ("last_name", moodle_user.get("lastname")),
            ("email", email),
        ):
            if value and getattr(user, field_name) != value:
                setattr(user, field_name, value)
                changed = True
        if user.role == UserRole.STUDENT and role != UserRole.STUDENT:
            user.role = role
            changed = True
        user.last_synced_at = now
        user.save()
        return user, False, changed

    # =========================================================================
    # Enrollments
    # =========================================================================

    def sync_enrollments(self) -> SyncSummary:
        """Mirror LMS course memberships as enrolled portal enrollments."""
        summary = SyncSummary()
        logger = self.get_logger()

        courses = Course.objects.filter(
            status=CourseStatus.ACTIVE,
            moodle_course_id__isnull=False,
        )
        for course in courses:
            try:
                moodle_users = self.moodle.get_enrolled_users(course.moodle_course_id)
            except Exception as e:
                summary.failed += 1
                logger.error(
                    f"Failed to fetch enrolled users for course {course.pk}: {e}",
                    extra={"course_id": course.pk, "moodle_course_id": course.moodle_course_id},
                    exc_info=True,
                )
                continue

            for moodle_user in moodle_users:
                try:
                    with transaction.atomic():
                        created, updated = self._sync_enrollment(course, moodle_user)
                    summary.synced += 1
                    summary.created += int(created)
                    summary.updated += int(updated)
                except Exception as e:
                    summary.failed += 1
                    logger.error(
                        f"Failed to sync enrollment of Moodle user "
                        f"{moodle_user.get('id')} in course {course.pk}: {e}",
                        extra={"course_id": course.pk, "moodle_user_id": moodle_user.get("id")},
                        exc_info=True,
                    )

        logger.info("Enrollment sync finished", extra={"summary": summary.to_dict()})
        return summary

    def _sync_enrollment(self, course: Course, moodle_user: dict[str, Any]) -> tuple[bool, bool]:
        now = timezone.now()
        role = map_moodle_role(moodle_user.get("roles"))
        user, _, _ = self._sync_user(moodle_user, role=role)

        enrollment, created = Enrollment.objects.get_or_create(
            user=user,
            course=course,
            defaults={
                "enrollment_status": EnrollmentStatus.ENROLLED,
                "payment_status": EnrollmentPaymentStatus.COMPLETED,
                "enrolled_at": now,
                "last_synced_at": now,
            },
        )
        if created:
            return True, False

        updated = False
        if enrollment.enrollment_status in (EnrollmentStatus.PENDING, EnrollmentStatus.DROPPED):
            enrollment.activate()
            updated = True
        enrollment.last_synced_at = now
        try:
            with transaction.atomic():
                enrollment.save()
        except ConcurrentTransition:
            return False, False
        return False, updated

    # =========================================================================
    # Completion
    # =========================================================================

    def sync_completion(self) -> SyncSummary:
        """
        Mark enrollments completed when the LMS reports course completion.

        Courses without completion tracking are counted as skipped.
        """
        summary = SyncSummary()
        logger = self.get_logger()

        enrollments = Enrollment.objects.filter(
            enrollment_status=EnrollmentStatus.ENROLLED,
            user__moodle_user_id__isnull=False,
            course__moodle_course_id__isnull=False,
        ).select_related("user", "course")

        for enrollment in enrollments:
            try:
                completion = self.moodle.get_course_completion(
                    enrollment.course.moodle_course_id,
                    enrollment.user.moodle_user_id,
                )
                if completion is None:
                    summary.skipped += 1
                    continue

                with transaction.atomic():
                    enrollment.last_synced_at = timezone.now()
                    if completion["completed"]:
                        completed_at = None
                        if completion.get("timecompleted"):
                            completed_at = datetime.fromtimestamp(
                                completion["timecompleted"], tz=dt_timezone.utc
                            )
                        enrollment.complete(completed_at=completed_at)
                    enrollment.save()
                summary.synced += 1
                summary.updated += int(bool(completion["completed"]))
            except ConcurrentTransition:
                logger.info(
                    f"Enrollment {enrollment.pk} changed during completion sync",
                    extra={"enrollment_id": enrollment.pk},
                )
            except Exception as e:
                summary.failed += 1
                logger.error(
                    f"Failed to sync completion for enrollment {enrollment.pk}: {e}",
                    extra={"enrollment_id": enrollment.pk},
                    exc_info=True,
                )

        logger.info("Completion sync finished", extra={"summary": summary.to_dict()})
        return summary
