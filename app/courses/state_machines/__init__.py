"""
State machine enums for course and enrollment models.
"""

from courses.state_machines.states import (
    CourseStatus,
    EnrollmentPaymentStatus,
    EnrollmentStatus,
    ProgressStatus,
)

__all__ = [
    "CourseStatus",
    "EnrollmentPaymentStatus",
    "EnrollmentStatus",
    "ProgressStatus",
]
