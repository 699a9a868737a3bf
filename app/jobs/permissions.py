"""
Permission classes for the queue administration API.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from authentication.models import UserRole

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView


class IsPortalAdmin(permissions.BasePermission):
    """Allows access to users with the admin role and to staff."""

    message = "Queue administration requires an admin account."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_staff or user.role == UserRole.ADMIN
