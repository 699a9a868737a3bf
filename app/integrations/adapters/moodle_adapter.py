"""
Moodle web service adapter.

All LMS calls go through MoodleAdapter, which speaks Moodle's REST
protocol: every call is a POST to ``/webservice/rest/server.php`` carrying
``wstoken``, ``wsfunction`` and ``moodlewsrestformat=json``, with function
arguments flattened into form fields (``users[0][email]=...``).

Moodle reports application errors with HTTP 200 and a body containing
``exception`` / ``errorcode``; those are raised as MoodleError.

Configuration (via settings):
- MOODLE_URL: Base URL of the Moodle site
- MOODLE_TOKEN: Web service token
- MOODLE_TIMEOUT_SECONDS: Request timeout (default: 30)

Usage:
    from integrations.adapters import MoodleAdapter

    moodle = MoodleAdapter.from_settings()
    user = moodle.get_or_create_user(
        username="ama_42",
        password=password,
        firstname="Ama",
        lastname="Mensah",
        email="ama@example.com",
    )
    moodle.enroll_user(user["id"], course.moodle_course_id)
"""

from __future__ import annotations

from typing import Any

from django.conf import settings

from core.http_client import JsonHttpClient
from integrations.exceptions import MoodleError, MoodleNotConfiguredError

SITE_COURSE_ID = 1
STUDENT_ROLE_ID = 5
REST_PATH = "webservice/rest/server.php"


class MoodleAdapter(JsonHttpClient):
    """
    Moodle REST client.

    Args:
        base_url: Moodle site URL
        token: Web service token
        timeout: Request timeout in seconds
    """

    service_name = "moodle"
    error_class = MoodleError

    def __init__(self, base_url: str, token: str, timeout: float | None = None, **kwargs):
        super().__init__(base_url, timeout=timeout, **kwargs)
        self.token = token

    @classmethod
    def from_settings(cls) -> MoodleAdapter:
        return cls(
            base_url=settings.MOODLE_URL,
            token=settings.MOODLE_TOKEN,
            timeout=settings.MOODLE_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.token)

    # =========================================================================
    # Transport
    # =========================================================================

    def call(self, wsfunction: str, params: dict[str, Any] | None = None) -> Any:
        """
        Invoke a Moodle web service function.

        Raises:
            MoodleNotConfiguredError: If URL or token is missing
            MoodleError: On transport failure or a Moodle exception body
        """
        if not self.is_configured:
            raise MoodleNotConfiguredError("Moodle integration is not configured")

        form = {key: value for key, value in (params or {}).items() if value is not None}
        body = self.request(
            "POST",
            REST_PATH,
            params={
                "wstoken": self.token,
                "wsfunction": wsfunction,
                "moodlewsrestformat": "json",
            },
            data=form,
        )

        if isinstance(body, dict) and (body.get("exception") or body.get("errorcode")):
            raise MoodleError(
                body.get("message") or body.get("exception") or body.get("errorcode"),
                error_code="MOODLE_WS_EXCEPTION",
                details={
                    "wsfunction": wsfunction,
                    "exception": body.get("exception"),
                    "errorcode": body.get("errorcode"),
                },
                retryable=False,
            )
        return body

    # =========================================================================
    # Site and courses
    # =========================================================================

    def get_site_info(self) -> dict[str, Any]:
        return self.call("core_webservice_get_site_info")

    def get_courses(self) -> list[dict[str, Any]]:
        """All courses except the Moodle front page (site course id 1)."""
        courses = self.call("core_course_get_courses") or []
        return [course for course in courses if course.get("id") != SITE_COURSE_ID]

    # =========================================================================
    # Users
    # =========================================================================

    def get_users(self) -> list[dict[str, Any]]:
        """Users with manual authentication (the accounts the portal manages)."""
        body = self.call(
            "core_user_get_users",
            {"criteria[0][key]": "auth", "criteria[0][value]": "manual"},
        )
        return (body or {}).get("users", [])

    def get_user_by_email(self, email: str) -> dict[str, Any] | None:
        users = self.call(
            "core_user_get_users_by_field",
            {"field": "email", "values[0]": email},
        )
        return users[0] if users else None

    def create_user(
        self,
        *,
        username: str,
        password: str,
        firstname: str,
        lastname: str,
        email: str,
    ) -> dict[str, Any]:
        """
        Create a manual-auth Moodle user.

        Returns:
            Dict with the new user's ``id`` and ``username``
        """
        created = self.call(
            "core_user_create_users",
            {
                "users[0][username]": username.lower(),
                "users[0][password]": password,
                "users[0][firstname]": firstname or "-",
                "users[0][lastname]": lastname or "-",
                "users[0][email]": email,
                "users[0][auth]": "manual",
            },
        )
        if not created:
            raise MoodleError(
                "Moodle returned no user after creation",
                error_code="MOODLE_USER_NOT_CREATED",
                details={"email": email},
            )
        self.get_logger().info(
            "Moodle user created",
            extra={"moodle_user_id": created[0]["id"], "username": username},
        )
        return created[0]

    def get_or_create_user(self, **fields: str) -> dict[str, Any]:
        """Return the Moodle user with this email, creating it if absent."""
        existing = self.get_user_by_email(fields["email"])
        if existing:
            return existing
        return self.create_user(**fields)

    # =========================================================================
    # Enrollments and completion
    # =========================================================================

    def enroll_user(self, user_id: int, course_id: int, role_id: int = STUDENT_ROLE_ID) -> None:
        """Manual enrolment; re-enrolling an enrolled user is a no-op in Moodle."""
        self.call(
            "enrol_manual_enrol_users",
            {
                "enrolments[0][roleid]": role_id,
                "enrolments[0][userid]": user_id,
                "enrolments[0][courseid]": course_id,
            },
        )
        self.get_logger().info(
            "Moodle enrolment done",
            extra={"moodle_user_id": user_id, "moodle_course_id": course_id, "role_id": role_id},
        )

    def get_enrolled_users(self, course_id: int) -> list[dict[str, Any]]:
        """Users enrolled in a course, each with its ``roles`` list."""
        return self.call("core_enrol_get_enrolled_users", {"courseid": course_id}) or []

    def get_course_completion(self, course_id: int, user_id: int) -> dict[str, Any] | None:
        """
        Completion status of a user in a course.

        Returns:
            ``{"completed": bool, "timecompleted": int | None}``, or None when
            the course has no completion tracking
        """
        try:
            body = self.call(
                "core_completion_get_course_completion_status",
                {"courseid": course_id, "userid": user_id},
            )
        except MoodleError as e:
            if e.error_code != "MOODLE_WS_EXCEPTION":
                raise
            self.get_logger().info(
                "Completion tracking unavailable",
                extra={"moodle_course_id": course_id, "moodle_user_id": user_id},
            )
            return None

        status = (body or {}).get("completionstatus")
        if not isinstance(status, dict):
            return None
        return {
            "completed": bool(status.get("completed")),
            "timecompleted": status.get("timecompleted") or None,
        }
