"""
Integration services built on the LMS client.

- LmsEnrollmentService: idempotent LMS account creation and enrollment
- MoodleSyncService: pull LMS courses, users, enrollments and completion
"""

from integrations.services.lms_enrollment import (
    EnrollmentOutcome,
    LmsEnrollmentService,
)
from integrations.services.moodle_sync import (
    MoodleSyncService,
    SyncSummary,
    map_moodle_role,
)

__all__ = [
    "EnrollmentOutcome",
    "LmsEnrollmentService",
    "MoodleSyncService",
    "SyncSummary",
    "map_moodle_role",
]
