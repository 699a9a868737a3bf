"""
Tests for EnrollmentProcessor job handlers.

Tests cover:
- Enrollment completion after payment, with LMS enrollment and follow-on jobs
- Idempotent redelivery of completion and progress initialization
- Progress calculation (rounding, monotonic, completion at 100)
- LMS and incubator account jobs
"""

import pytest

from authentication.tests.factories import UserFactory
from courses.models import Enrollment, StudentProgress
from courses.processors import MOODLE_SYNCED_EVENT, calculate_percentage
from courses.state_machines import (
    EnrollmentPaymentStatus,
    EnrollmentStatus,
    ProgressStatus,
)
from courses.tests.factories import (
    CourseFactory,
    CourseModuleFactory,
    EnrollmentFactory,
    StudentProgressFactory,
)
from integrations.exceptions import MoodleError
from jobs.kinds import JobKind, JobStatus
from jobs.models import QueuedJob


@pytest.fixture
def lms_course(db):
    course = CourseFactory(title="Web Development", moodle_course_id=12)
    CourseModuleFactory.create_batch(3, course=course)
    return course


def complete_modules(enrollment, count):
    for module in enrollment.course.modules.order_by("order_index")[:count]:
        StudentProgressFactory(
            enrollment=enrollment,
            module=module,
            status=ProgressStatus.COMPLETED,
        )


# =============================================================================
# calculate_percentage
# =============================================================================


class TestCalculatePercentage:
    @pytest.mark.parametrize(
        "completed, total, expected",
        [
            (0, 0, 0),
            (0, 4, 0),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),
            (3, 3, 100),
        ],
    )
    def test_rounds_half_up(self, completed, total, expected):
        assert calculate_percentage(completed, total) == expected


# =============================================================================
# COMPLETE_ENROLLMENT
# =============================================================================


@pytest.mark.django_db
class TestCompleteEnrollment:
    def test_enrolls_in_lms_and_activates(self, runtime, run_job, moodle, realtime, lms_course):
        enrollment = EnrollmentFactory(course=lms_course)
        moodle.get_or_create_user.return_value = {"id": 41}

        outcome = run_job(runtime.enrollments.complete_enrollment(enrollment.id, "ref_1"))

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.result["status"] == "enrolled"
        assert outcome.result["lms"]["moodle_user_id"] == 41
        moodle.enroll_user.assert_called_once_with(41, 12)

        enrollment.refresh_from_db()
        assert enrollment.enrollment_status == EnrollmentStatus.ENROLLED
        assert enrollment.payment_status == EnrollmentPaymentStatus.COMPLETED
        assert enrollment.payment_reference == "ref_1"
        assert enrollment.enrolled_at is not None

        assert QueuedJob.objects.filter(job_id=f"initialize-progress-{enrollment.id}").exists()
        assert QueuedJob.objects.filter(job_id=f"email-enrollment-{enrollment.id}").exists()
        assert QueuedJob.objects.filter(
            name=JobKind.SYNC_INCUBATOR_PROFILE, payload__user_id=enrollment.user_id
        ).exists()

        user_id, event, data = realtime.emit_to_user.call_args.args
        assert (user_id, event) == (enrollment.user_id, MOODLE_SYNCED_EVENT)
        assert data["status"] == "enrolled"
        assert data["moodle_course_id"] == 12

    def test_existing_lms_account_is_reused(self, runtime, run_job, moodle, lms_course):
        user = UserFactory(moodle_user_id=900)
        enrollment = EnrollmentFactory(user=user, course=lms_course)

        run_job(runtime.enrollments.complete_enrollment(enrollment.id, "ref_1"))

        moodle.get_or_create_user.assert_not_called()
        moodle.enroll_user.assert_called_once_with(900, 12)

    def test_already_active_enrollment_is_a_no_op(self, runtime, run_job, moodle):
        enrollment = EnrollmentFactory(active=True)

        outcome = run_job(runtime.enrollments.complete_enrollment(enrollment.id, "ref_1"))

        assert outcome.result == {"status": "already_completed", "enrollment_id": enrollment.id}
        moodle.get_or_create_user.assert_not_called()
        assert not QueuedJob.objects.filter(job_id__startswith="email-enrollment-").exists()

    def test_course_without_lms_mapping_still_activates(self, runtime, run_job, moodle):
        enrollment = EnrollmentFactory()
        moodle.get_or_create_user.return_value = {"id": 41}

        outcome = run_job(runtime.enrollments.complete_enrollment(enrollment.id, "ref_1"))

        assert outcome.result["lms"]["status"] == "no_moodle_course_id"
        moodle.enroll_user.assert_not_called()
        enrollment.refresh_from_db()
        assert enrollment.enrollment_status == EnrollmentStatus.ENROLLED

    def test_unconfigured_lms_still_activates(self, runtime, run_job, moodle, lms_course):
        moodle.is_configured = False
        enrollment = EnrollmentFactory(course=lms_course)

        outcome = run_job(runtime.enrollments.complete_enrollment(enrollment.id, "ref_1"))

        assert outcome.result["lms"]["status"] == "moodle_not_configured"
        moodle.get_or_create_user.assert_not_called()
        enrollment.refresh_from_db()
        assert enrollment.is_active

    def test_lms_outage_is_retried_without_activation(
        self, runtime, run_job, moodle, lms_course
    ):
        enrollment = EnrollmentFactory(course=lms_course)
        moodle.get_or_create_user.side_effect = MoodleError("Moodle down", retryable=True)

        outcome = run_job(runtime.enrollments.complete_enrollment(enrollment.id, "ref_1"))

        assert outcome.status == JobStatus.DELAYED
        enrollment.refresh_from_db()
        assert enrollment.enrollment_status == EnrollmentStatus.PENDING
        assert not QueuedJob.objects.filter(job_id__startswith="email-enrollment-").exists()

    def test_missing_enrollment_fails_permanently(self, runtime, run_job):
        outcome = run_job(runtime.enrollments.complete_enrollment(999999, "ref_1"))

        assert outcome.status == JobStatus.FAILED
        assert "ENROLLMENT_NOT_FOUND" in outcome.error


@pytest.mark.django_db
class TestSyncMoodleEnrollment:
    def test_enrolls_and_stamps_sync_time(self, runtime, run_job, moodle, lms_course):
        enrollment = EnrollmentFactory(course=lms_course, active=True)
        moodle.get_or_create_user.return_value = {"id": 41}

        outcome = run_job(runtime.enrollments.sync_moodle_enrollment(enrollment.id))

        assert outcome.result["status"] == "enrolled"
        enrollment.refresh_from_db()
        assert enrollment.last_synced_at is not None


# =============================================================================
# Progress
# =============================================================================


@pytest.mark.django_db
class TestInitializeProgress:
    def test_creates_one_row_per_module_once(self, runtime, run_job, lms_course):
        enrollment = EnrollmentFactory(course=lms_course, active=True)

        first = run_job(runtime.enrollments.initialize_progress(enrollment.id))
        second = run_job(runtime.enrollments.initialize_progress(enrollment.id))

        assert first.result["created"] == 3
        assert second.result == {"enrollment_id": enrollment.id, "modules": 3, "created": 0}
        rows = StudentProgress.objects.filter(enrollment=enrollment)
        assert rows.count() == 3
        assert set(rows.values_list("status", flat=True)) == {ProgressStatus.NOT_STARTED}


@pytest.mark.django_db
class TestCalculateProgress:
    def test_partial_progress(self, runtime, run_job, lms_course):
        enrollment = EnrollmentFactory(course=lms_course, active=True)
        complete_modules(enrollment, 1)

        outcome = run_job(runtime.enrollments.calculate_progress(enrollment.id))

        assert outcome.result["progress_percentage"] == 33
        assert outcome.result["completed_now"] is False
        enrollment.refresh_from_db()
        assert enrollment.progress_percentage == 33
        assert enrollment.last_accessed is not None

    def test_progress_never_decreases(self, runtime, run_job, lms_course):
        enrollment = EnrollmentFactory(course=lms_course, active=True, progress_percentage=50)
        complete_modules(enrollment, 1)

        outcome = run_job(runtime.enrollments.calculate_progress(enrollment.id))

        assert outcome.result["progress_percentage"] == 50

    def test_all_modules_complete_the_enrollment(self, runtime, run_job, lms_course):
        enrollment = EnrollmentFactory(course=lms_course, active=True)
        complete_modules(enrollment, 3)

        outcome = run_job(runtime.enrollments.calculate_progress(enrollment.id))

        assert outcome.result["completed_now"] is True
        enrollment.refresh_from_db()
        assert enrollment.enrollment_status == EnrollmentStatus.COMPLETED
        assert enrollment.progress_percentage == 100
        assert enrollment.completed_at is not None
        assert QueuedJob.objects.filter(job_id=f"email-completion-{enrollment.id}").exists()
        assert QueuedJob.objects.filter(
            job_id=f"sync-course-completion-{enrollment.id}"
        ).exists()

    def test_completed_enrollment_is_not_completed_twice(self, runtime, run_job, lms_course):
        enrollment = EnrollmentFactory(course=lms_course, completed=True)
        completed_at = enrollment.completed_at

        outcome = run_job(runtime.enrollments.calculate_progress(enrollment.id))

        assert outcome.result["completed_now"] is False
        enrollment.refresh_from_db()
        assert enrollment.completed_at == completed_at
        assert not QueuedJob.objects.filter(job_id__startswith="email-completion-").exists()

    def test_inactive_enrollment_is_rejected(self, runtime, run_job, lms_course):
        enrollment = EnrollmentFactory(course=lms_course)

        outcome = run_job(runtime.enrollments.calculate_progress(enrollment.id))

        assert outcome.status == JobStatus.FAILED
        assert "ENROLLMENT_NOT_ACTIVE" in outcome.error
        assert Enrollment.objects.get(pk=enrollment.pk).progress_percentage == 0


# =============================================================================
# External accounts
# =============================================================================


@pytest.mark.django_db
class TestAccountJobs:
    def test_create_moodle_account(self, runtime, run_job, moodle):
        user = UserFactory()
        moodle.get_or_create_user.return_value = {"id": 55}

        outcome = run_job(runtime.enrollments.create_moodle_account(user.id))

        assert outcome.result == {"already_exists": False, "id": 55}
        user.refresh_from_db()
        assert user.moodle_user_id == 55
        assert moodle.get_or_create_user.call_args.kwargs["username"] == user.lms_username

    def test_create_moodle_account_keeps_existing_id(self, runtime, run_job, moodle):
        user = UserFactory(moodle_user_id=12)

        outcome = run_job(runtime.enrollments.create_moodle_account(user.id))

        assert outcome.result == {"already_exists": True, "id": 12}
        moodle.get_or_create_user.assert_not_called()

    def test_create_incubator_account(self, runtime, run_job, incubator):
        user = UserFactory(first_name="Ama", last_name="Mensah")
        incubator.create_user.return_value = "inc_1"

        outcome = run_job(runtime.enrollments.create_incubator_account(user.id))

        assert outcome.result == {"already_exists": False, "id": "inc_1"}
        incubator.create_user.assert_called_once_with(
            email=user.email,
            first_name="Ama",
            last_name="Mensah",
            central_user_id=user.id,
        )

    def test_create_incubator_account_keeps_existing_id(self, runtime, run_job, incubator):
        user = UserFactory(incubator_user_id="inc_9")

        outcome = run_job(runtime.enrollments.create_incubator_account(user.id))

        assert outcome.result == {"already_exists": True, "id": "inc_9"}
        incubator.create_user.assert_not_called()

    def test_create_incubator_account_skipped_when_unconfigured(
        self, runtime, run_job, incubator
    ):
        incubator.is_configured = False
        user = UserFactory()

        outcome = run_job(runtime.enrollments.create_incubator_account(user.id))

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.result == {"skipped": "incubator_not_configured"}
        incubator.create_user.assert_not_called()

    def test_sync_incubator_profile_updates_existing_user(self, runtime, run_job, incubator):
        user = UserFactory(incubator_user_id="inc_9", first_name="Kofi")

        outcome = run_job(runtime.enrollments.sync_incubator_profile(user.id))

        assert outcome.result == {"action": "updated", "id": "inc_9"}
        incubator_id, data = incubator.update_user_profile.call_args.args
        assert incubator_id == "inc_9"
        assert data["firstName"] == "Kofi"

    def test_sync_incubator_profile_skipped_when_unconfigured(self, runtime, run_job, incubator):
        incubator.is_configured = False
        user = UserFactory()

        outcome = run_job(runtime.enrollments.sync_incubator_profile(user.id))

        assert outcome.result == {"skipped": "incubator_not_configured"}
        incubator.create_user.assert_not_called()

    def test_sync_course_completion(self, runtime, run_job, incubator):
        user = UserFactory(incubator_user_id="inc_9")
        enrollment = EnrollmentFactory(user=user, completed=True)

        outcome = run_job(runtime.enrollments.sync_course_completion(enrollment.id))

        assert outcome.result == {"synced": True, "enrollment_id": enrollment.id}
        incubator_id, course, completion = incubator.sync_course_completion.call_args.args
        assert incubator_id == "inc_9"
        assert course == enrollment.course
        assert completion["progress_percentage"] == 100

    def test_sync_course_completion_skipped_when_unconfigured(self, runtime, run_job, incubator):
        incubator.is_configured = False
        enrollment = EnrollmentFactory(user=UserFactory(incubator_user_id="inc_9"), completed=True)

        outcome = run_job(runtime.enrollments.sync_course_completion(enrollment.id))

        assert outcome.status == JobStatus.COMPLETED
        assert outcome.result == {"skipped": "incubator_not_configured"}
        incubator.sync_course_completion.assert_not_called()

    def test_sync_course_completion_without_incubator_account(self, runtime, run_job, incubator):
        enrollment = EnrollmentFactory(completed=True)

        outcome = run_job(runtime.enrollments.sync_course_completion(enrollment.id))

        assert outcome.result == {"skipped": "no_incubator_account"}
        incubator.sync_course_completion.assert_not_called()
