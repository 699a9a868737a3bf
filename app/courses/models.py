"""
Course catalog and enrollment models.

Models:
    Course: A sellable course, optionally mapped to an LMS course
    CourseModule: Ordered unit of a course, the basis of progress
    Enrollment: A user's seat in a course (payment + access state)
    StudentProgress: Per-module progress for an enrollment

Usage:
    from courses.models import Enrollment

    enrollment = Enrollment.objects.select_related("user", "course").get(id=enrollment_id)
    enrollment.activate(payment_reference="abc123")
    enrollment.save()  # conditional on the persisted states

Concurrency:
    Enrollment uses django-fsm's ConcurrentTransitionMixin. A save only
    succeeds if the row still holds the states it was loaded with;
    otherwise django_fsm.ConcurrentTransition is raised and the caller
    treats the operation as already done.
"""

from __future__ import annotations

from django.conf import settings
from django.core.validators import MaxValueValidator
from django.db import models
from django.utils import timezone

from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from core.models import BaseModel
from courses.state_machines import (
    CourseStatus,
    EnrollmentPaymentStatus,
    EnrollmentStatus,
    ProgressStatus,
)


class Course(BaseModel):
    """
    A course offered on the portal.

    Fields:
        moodle_course_id: LMS course id; None means the course has no LMS
            counterpart and enrollment skips the LMS step
        price / currency: Major units (GHS by default)
    """

    title = models.CharField(max_length=255)
    short_name = models.CharField(max_length=100, blank=True, default="")
    short_description = models.CharField(max_length=500, blank=True, default="")
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="GHS")
    status = models.CharField(
        max_length=20,
        choices=CourseStatus.choices,
        default=CourseStatus.DRAFT,
        db_index=True,
    )
    moodle_course_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        unique=True,
        help_text="Course id in the Moodle LMS",
    )
    last_synced_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["title"]
        verbose_name = "Course"
        verbose_name_plural = "Courses"

    def __str__(self) -> str:
        return self.title


class CourseModule(BaseModel):
    """Ordered unit of a course."""

    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="modules")
    title = models.CharField(max_length=255)
    order_index = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["course", "order_index"]
        verbose_name = "Course Module"
        verbose_name_plural = "Course Modules"

    def __str__(self) -> str:
        return f"{self.course_id}:{self.order_index} {self.title}"


class Enrollment(ConcurrentTransitionMixin, BaseModel):
    """
    A user's enrollment in a course.

    Two FSM fields track the payment and the access side independently.
    Invariant: progress_percentage == 100 implies enrollment_status is
    COMPLETED, and completed_at is written exactly once by complete().

    State transitions:
        activate(): pending/dropped → enrolled
        complete(): enrolled → completed
        drop(): pending → dropped
        confirm_payment(): pending/failed → completed
        fail_payment(): pending → failed
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="enrollments",
    )
    course = models.ForeignKey(Course, on_delete=models.CASCADE, related_name="enrollments")

    payment_status = FSMField(
        default=EnrollmentPaymentStatus.PENDING,
        choices=EnrollmentPaymentStatus.choices,
        db_index=True,
    )
    enrollment_status = FSMField(
        default=EnrollmentStatus.PENDING,
        choices=EnrollmentStatus.choices,
        db_index=True,
    )

    progress_percentage = models.PositiveSmallIntegerField(
        default=0,
        validators=[MaxValueValidator(100)],
    )
    payment_reference = models.CharField(max_length=100, null=True, blank=True)
    enrolled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    last_accessed = models.DateTimeField(null=True, blank=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Enrollment"
        verbose_name_plural = "Enrollments"
        constraints = [
            models.UniqueConstraint(fields=["user", "course"], name="unique_user_course_enrollment"),
            models.CheckConstraint(
                check=models.Q(progress_percentage__lte=100),
                name="enrollment_progress_max_100",
            ),
        ]
        indexes = [
            models.Index(
                fields=["enrollment_status", "payment_status"],
                name="courses_enr_status_3c9a2d_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Enrollment({self.user_id}, {self.course_id}, {self.enrollment_status})"

    @property
    def is_active(self) -> bool:
        return self.enrollment_status in (EnrollmentStatus.ENROLLED, EnrollmentStatus.COMPLETED)

    # ==========================================================================
    # Enrollment status transitions
    # ==========================================================================

    @transition(
        field=enrollment_status,
        source=[EnrollmentStatus.PENDING, EnrollmentStatus.DROPPED],
        target=EnrollmentStatus.ENROLLED,
    )
    def activate(self, payment_reference: str | None = None):
        """Grant access after payment (or after the LMS shows the user enrolled)."""
        self.enrolled_at = self.enrolled_at or timezone.now()
        if payment_reference:
            self.payment_reference = payment_reference

    @transition(
        field=enrollment_status,
        source=EnrollmentStatus.ENROLLED,
        target=EnrollmentStatus.COMPLETED,
    )
    def complete(self, completed_at=None):
        """Mark the course finished. Sets progress to 100."""
        self.completed_at = completed_at or timezone.now()
        self.progress_percentage = 100

    @transition(
        field=enrollment_status,
        source=EnrollmentStatus.PENDING,
        target=EnrollmentStatus.DROPPED,
    )
    def drop(self):
        pass

    # ==========================================================================
    # Payment status transitions
    # ==========================================================================

    @transition(
        field=payment_status,
        source=[EnrollmentPaymentStatus.PENDING, EnrollmentPaymentStatus.FAILED],
        target=EnrollmentPaymentStatus.COMPLETED,
    )
    def confirm_payment(self):
        pass

    @transition(
        field=payment_status,
        source=EnrollmentPaymentStatus.PENDING,
        target=EnrollmentPaymentStatus.FAILED,
    )
    def fail_payment(self):
        pass


class StudentProgress(BaseModel):
    """Progress of one enrollment through one module."""

    enrollment = models.ForeignKey(
        Enrollment,
        on_delete=models.CASCADE,
        related_name="progress_records",
    )
    module = models.ForeignKey(
        CourseModule,
        on_delete=models.CASCADE,
        related_name="progress_records",
    )
    status = models.CharField(
        max_length=20,
        choices=ProgressStatus.choices,
        default=ProgressStatus.NOT_STARTED,
    )
    score = models.DecimalField(max_digits=5, decimal_places=2, null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["module__order_index"]
        verbose_name = "Student Progress"
        verbose_name_plural = "Student Progress"
        constraints = [
            models.UniqueConstraint(
                fields=["enrollment", "module"],
                name="unique_enrollment_module_progress",
            ),
        ]

    def __str__(self) -> str:
        return f"StudentProgress({self.enrollment_id}, {self.module_id}, {self.status})"
