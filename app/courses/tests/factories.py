"""
Factory Boy factories for course test data.

Usage:
    from courses.tests.factories import CourseFactory, EnrollmentFactory

    # Course mapped to LMS course 12 with three modules
    course = CourseFactory(moodle_course_id=12)
    CourseModuleFactory.create_batch(3, course=course)

    # Enrollment waiting for payment
    enrollment = EnrollmentFactory(course=course)

    # Active enrollment
    enrollment = EnrollmentFactory(active=True)
"""

from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from courses.models import Course, CourseModule, Enrollment, StudentProgress
from courses.state_machines import (
    CourseStatus,
    EnrollmentPaymentStatus,
    EnrollmentStatus,
    ProgressStatus,
)


class CourseFactory(factory.django.DjangoModelFactory):
    """Active, paid course without an LMS mapping."""

    class Meta:
        model = Course

    title = factory.Sequence(lambda n: f"Course {n}")
    short_name = factory.Sequence(lambda n: f"C{n}")
    price = Decimal("499.00")
    currency = "GHS"
    status = CourseStatus.ACTIVE
    moodle_course_id = None


class CourseModuleFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = CourseModule

    course = factory.SubFactory(CourseFactory)
    title = factory.Sequence(lambda n: f"Module {n}")
    order_index = factory.Sequence(lambda n: n)


class EnrollmentFactory(factory.django.DjangoModelFactory):
    """
    Factory for Enrollment.

    Default is a fresh enrollment: payment pending, access pending.

    Traits:
        active: Paid and enrolled
        completed: Paid, finished, progress 100
    """

    class Meta:
        model = Enrollment

    user = factory.SubFactory(UserFactory)
    course = factory.SubFactory(CourseFactory)
    payment_status = EnrollmentPaymentStatus.PENDING
    enrollment_status = EnrollmentStatus.PENDING
    progress_percentage = 0

    class Params:
        active = factory.Trait(
            payment_status=EnrollmentPaymentStatus.COMPLETED,
            enrollment_status=EnrollmentStatus.ENROLLED,
            enrolled_at=factory.LazyFunction(timezone.now),
        )
        completed = factory.Trait(
            payment_status=EnrollmentPaymentStatus.COMPLETED,
            enrollment_status=EnrollmentStatus.COMPLETED,
            progress_percentage=100,
            enrolled_at=factory.LazyFunction(timezone.now),
            completed_at=factory.LazyFunction(timezone.now),
        )


class StudentProgressFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = StudentProgress

    enrollment = factory.SubFactory(EnrollmentFactory)
    module = factory.SubFactory(
        CourseModuleFactory,
        course=factory.SelfAttribute("..enrollment.course"),
    )
    status = ProgressStatus.NOT_STARTED
