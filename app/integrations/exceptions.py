"""
Exceptions raised by the LMS and incubator clients.

Exception Hierarchy:
    ExternalServiceError (core)
    ├── MoodleError - Moodle web service failures
    │   └── MoodleNotConfiguredError - URL/token missing (not retryable)
    └── IncubatorError - Incubator API failures

Whether a particular failure is retried is decided per instance by the
HTTP client (timeouts, 429 and 5xx are retryable; other 4xx are not).
"""

from __future__ import annotations

from core.exceptions import ExternalServiceError


class MoodleError(ExternalServiceError):
    """
    Raised when a Moodle web service call fails.

    Moodle reports application errors with HTTP 200 and an
    ``exception``/``errorcode`` body; those are raised as MoodleError with
    the Moodle error code in details.
    """

    default_error_code: str = "MOODLE_ERROR"


class MoodleNotConfiguredError(MoodleError):
    """Raised when MOODLE_URL or MOODLE_TOKEN is not set."""

    default_error_code: str = "MOODLE_NOT_CONFIGURED"
    is_retryable: bool = False


class IncubatorError(ExternalServiceError):
    """Raised when an incubator API call fails."""

    default_error_code: str = "INCUBATOR_ERROR"
