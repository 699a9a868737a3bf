"""
State enums for course models.

Enrollment carries two independent state machines, both django-fsm fields:

Enrollment payment status:
    pending → completed (payment confirmed)
    pending → failed (payment failed or abandoned)
    failed → completed (late confirmation)

Enrollment status:
    pending → enrolled (activation after payment)
    pending → dropped (abandoned checkout)
    dropped → enrolled (LMS shows the user enrolled)
    enrolled → completed (all modules done, or LMS completion)

Student progress (per module):
    not_started → in_progress → completed
"""

from django.db import models


class CourseStatus(models.TextChoices):
    """Catalog status of a course."""

    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    ARCHIVED = "archived", "Archived"


class EnrollmentPaymentStatus(models.TextChoices):
    """
    Payment side of an Enrollment.

    Terminal state: COMPLETED
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class EnrollmentStatus(models.TextChoices):
    """
    Access side of an Enrollment.

    Terminal state: COMPLETED
    """

    PENDING = "pending", "Pending"
    ENROLLED = "enrolled", "Enrolled"
    COMPLETED = "completed", "Completed"
    DROPPED = "dropped", "Dropped"


class ProgressStatus(models.TextChoices):
    """Status of one module for one enrollment."""

    NOT_STARTED = "not_started", "Not started"
    IN_PROGRESS = "in_progress", "In progress"
    COMPLETED = "completed", "Completed"
