"""
Talent incubator API adapter.

The incubator keeps its own user records; the portal creates them over SSO
and pushes profile changes and completed courses (as skills).

Configuration (via settings):
- INCUBATOR_API_URL: Base URL of the incubator API
- INCUBATOR_API_KEY: Sent as ``X-API-Key``
- INCUBATOR_TIMEOUT_SECONDS: Request timeout (default: 15)

Usage:
    from integrations.adapters import IncubatorAdapter

    incubator = IncubatorAdapter.from_settings()
    incubator_id = incubator.create_user(
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        central_user_id=user.id,
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.conf import settings

from core.http_client import JsonHttpClient
from integrations.exceptions import IncubatorError

if TYPE_CHECKING:
    from courses.models import Course


class IncubatorAdapter(JsonHttpClient):
    """Incubator REST client authenticated with an API key."""

    service_name = "incubator"
    error_class = IncubatorError
    default_timeout = 15

    def __init__(self, base_url: str, api_key: str, timeout: float | None = None, **kwargs):
        super().__init__(
            base_url,
            timeout=timeout,
            headers={"X-API-Key": api_key or "", "Content-Type": "application/json"},
            **kwargs,
        )
        self.api_key = api_key

    @classmethod
    def from_settings(cls) -> IncubatorAdapter:
        return cls(
            base_url=settings.INCUBATOR_API_URL,
            api_key=settings.INCUBATOR_API_KEY,
            timeout=settings.INCUBATOR_TIMEOUT_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def create_user(
        self,
        *,
        email: str,
        first_name: str,
        last_name: str,
        central_user_id: int,
    ) -> str:
        """
        Create the incubator user for a portal user.

        Returns:
            The incubator user id (``_id`` or ``id`` in the response)

        Raises:
            IncubatorError: On failure or when the response carries no id
        """
        body = self.request(
            "POST",
            "/api/users/sso",
            json={
                "email": email,
                "firstName": first_name,
                "lastName": last_name,
                "centralUserId": central_user_id,
                "authMethod": "sso",
            },
        )
        user = body.get("user", body) if isinstance(body, dict) else {}
        incubator_id = user.get("_id") or user.get("id")
        if not incubator_id:
            raise IncubatorError(
                "Incubator response did not include a user id",
                error_code="INCUBATOR_USER_ID_MISSING",
                details={"central_user_id": central_user_id},
                retryable=False,
            )
        return str(incubator_id)

    def update_user_profile(self, incubator_user_id: str, data: dict[str, Any]) -> Any:
        return self.request("PATCH", f"/api/users/{incubator_user_id}", json=data)

    def sync_course_completion(
        self,
        incubator_user_id: str,
        course: Course,
        completion: dict[str, Any],
    ) -> Any:
        """
        Record a completed course as a skill on the incubator profile.

        Args:
            completion: ``{"completed_at": datetime | None, "progress_percentage": int}``
        """
        completed_at = completion.get("completed_at")
        skill = {
            "name": course.title,
            "source": "portal",
            "courseId": course.id,
            "completedAt": completed_at.isoformat() if completed_at else None,
            "progress": completion.get("progress_percentage", 100),
        }
        return self.request(
            "PUT",
            f"/api/users/{incubator_user_id}/skills",
            json={"skills": [skill]},
        )
