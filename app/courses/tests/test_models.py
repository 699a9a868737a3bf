"""
Tests for course models and the Enrollment state machine.
"""

import pytest
from django.db import IntegrityError, transaction
from django_fsm import ConcurrentTransition, TransitionNotAllowed

from courses.models import Enrollment
from courses.state_machines import EnrollmentPaymentStatus, EnrollmentStatus
from courses.tests.factories import (
    CourseFactory,
    CourseModuleFactory,
    EnrollmentFactory,
    StudentProgressFactory,
)


@pytest.mark.django_db
class TestCourse:
    def test_modules_ordered_by_index(self):
        course = CourseFactory()
        second = CourseModuleFactory(course=course, order_index=2)
        first = CourseModuleFactory(course=course, order_index=1)

        assert list(course.modules.all()) == [first, second]

    def test_str(self):
        assert "Intro to Python" in str(CourseFactory(title="Intro to Python"))


@pytest.mark.django_db
class TestEnrollmentTransitions:
    def test_activate_sets_enrolled_at_and_reference(self):
        enrollment = EnrollmentFactory()

        enrollment.activate(payment_reference="ref_1")
        enrollment.confirm_payment()
        enrollment.save()

        enrollment.refresh_from_db()
        assert enrollment.enrollment_status == EnrollmentStatus.ENROLLED
        assert enrollment.payment_status == EnrollmentPaymentStatus.COMPLETED
        assert enrollment.enrolled_at is not None
        assert enrollment.payment_reference == "ref_1"
        assert enrollment.is_active

    def test_dropped_enrollment_can_be_reactivated(self):
        enrollment = EnrollmentFactory(enrollment_status=EnrollmentStatus.DROPPED)

        enrollment.activate()

        assert enrollment.enrollment_status == EnrollmentStatus.ENROLLED

    def test_complete_sets_progress_and_timestamp(self):
        enrollment = EnrollmentFactory(active=True, progress_percentage=80)

        enrollment.complete()

        assert enrollment.enrollment_status == EnrollmentStatus.COMPLETED
        assert enrollment.progress_percentage == 100
        assert enrollment.completed_at is not None

    def test_pending_enrollment_cannot_complete(self):
        enrollment = EnrollmentFactory()

        with pytest.raises(TransitionNotAllowed):
            enrollment.complete()

    def test_completed_enrollment_cannot_be_dropped(self):
        enrollment = EnrollmentFactory(completed=True)

        with pytest.raises(TransitionNotAllowed):
            enrollment.drop()

    def test_failed_payment_can_be_confirmed_later(self):
        enrollment = EnrollmentFactory(payment_status=EnrollmentPaymentStatus.FAILED)

        enrollment.confirm_payment()

        assert enrollment.payment_status == EnrollmentPaymentStatus.COMPLETED

    def test_concurrent_activation_is_detected(self):
        enrollment = EnrollmentFactory()
        stale = Enrollment.objects.get(pk=enrollment.pk)

        enrollment.activate()
        enrollment.save()

        stale.drop()
        with pytest.raises(ConcurrentTransition), transaction.atomic():
            stale.save()

        enrollment.refresh_from_db()
        assert enrollment.enrollment_status == EnrollmentStatus.ENROLLED


@pytest.mark.django_db
class TestEnrollmentConstraints:
    def test_one_enrollment_per_user_and_course(self):
        enrollment = EnrollmentFactory()

        with pytest.raises(IntegrityError):
            EnrollmentFactory(user=enrollment.user, course=enrollment.course)

    def test_progress_cannot_exceed_100(self):
        enrollment = EnrollmentFactory(active=True)

        with pytest.raises(IntegrityError):
            Enrollment.objects.filter(pk=enrollment.pk).update(progress_percentage=101)


@pytest.mark.django_db
class TestStudentProgress:
    def test_one_row_per_module(self):
        progress = StudentProgressFactory()

        assert progress.module.course_id == progress.enrollment.course_id
        with pytest.raises(IntegrityError):
            StudentProgressFactory(enrollment=progress.enrollment, module=progress.module)
