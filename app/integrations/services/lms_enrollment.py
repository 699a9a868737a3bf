"""
LMS account and enrollment steps shared by the enrollment and sync jobs.

Both steps are idempotent:
- ensure_account() only talks to Moodle when the user has no stored
  moodle_user_id, and links an existing Moodle user with the same email
  instead of creating a duplicate.
- enroll() relies on Moodle's manual enrolment being a no-op for a user
  who is already enrolled.

Usage:
    from integrations.services import LmsEnrollmentService

    lms = LmsEnrollmentService(MoodleAdapter.from_settings())
    outcome = lms.enroll(enrollment.user, enrollment.course)
    # {"status": "enrolled", "moodle_user_id": 12, "moodle_course_id": 7}
"""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Any

from core.services import BaseService

if TYPE_CHECKING:
    from authentication.models import User
    from courses.models import Course
    from integrations.adapters import MoodleAdapter


class EnrollmentOutcome:
    """Values of the ``status`` key returned by enroll()."""

    ENROLLED = "enrolled"
    NO_MOODLE_COURSE_ID = "no_moodle_course_id"
    MOODLE_NOT_CONFIGURED = "moodle_not_configured"


def generate_lms_password() -> str:
    """Random password satisfying Moodle's default password policy."""
    return f"{secrets.token_urlsafe(12)}Aa1!"


class LmsEnrollmentService(BaseService):
    """
    Ensure LMS accounts exist and enroll users into mapped courses.

    Args:
        moodle: Moodle client
    """

    def __init__(self, moodle: MoodleAdapter):
        self.moodle = moodle

    @property
    def is_available(self) -> bool:
        return self.moodle.is_configured

    def ensure_account(self, user: User) -> dict[str, Any]:
        """
        Make sure the user has an LMS account and its id is stored.

        Returns:
            ``{"moodle_user_id": int, "already_exists": bool}``

        Raises:
            MoodleError: If the LMS call fails
        """
        if user.moodle_user_id:
            return {"moodle_user_id": user.moodle_user_id, "already_exists": True}

        moodle_user = self.moodle.get_or_create_user(
            username=user.lms_username,
            password=generate_lms_password(),
            firstname=user.first_name,
            lastname=user.last_name,
            email=user.email,
        )
        stored = user.link_moodle_account(moodle_user["id"])
        if not stored:
            self.get_logger().info(
                f"User {user.pk} was linked to Moodle concurrently",
                extra={"user_id": user.pk, "moodle_user_id": user.moodle_user_id},
            )
        return {"moodle_user_id": user.moodle_user_id, "already_exists": not stored}

    def enroll(self, user: User, course: Course) -> dict[str, Any]:
        """
        Ensure the LMS account, then enroll it in the course's LMS course.

        A course without moodle_course_id is an expected outcome
        (``no_moodle_course_id``), not an error. So is a deployment without
        Moodle credentials (``moodle_not_configured``).

        Raises:
            MoodleError: If an LMS call fails
        """
        if not self.is_available:
            self.get_logger().warning(
                "Moodle not configured, skipping LMS enrollment",
                extra={"user_id": user.pk, "course_id": course.pk},
            )
            return {
                "status": EnrollmentOutcome.MOODLE_NOT_CONFIGURED,
                "moodle_course_id": course.moodle_course_id,
            }

        account = self.ensure_account(user)

        if not course.moodle_course_id:
            return {
                "status": EnrollmentOutcome.NO_MOODLE_COURSE_ID,
                "moodle_user_id": account["moodle_user_id"],
                "moodle_course_id": None,
            }

        self.moodle.enroll_user(account["moodle_user_id"], course.moodle_course_id)
        return {
            "status": EnrollmentOutcome.ENROLLED,
            "moodle_user_id": account["moodle_user_id"],
            "moodle_course_id": course.moodle_course_id,
        }
