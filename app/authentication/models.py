"""
Authentication models.

This module defines the portal User model: email-based login plus the
external-identity fields that join a portal account to its LMS (Moodle)
and talent-incubator counterparts.

Related files:
    - managers.py: Custom user manager for email-based creation

External identity:
    moodle_user_id and incubator_user_id are written at most once. Every
    "create external account" step checks them first and short-circuits
    with the stored id, which is what makes account creation idempotent
    under job redelivery.
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """Portal roles, also the target of the LMS role mapping."""

    STUDENT = "student", "Student"
    TEACHER = "teacher", "Teacher"
    ADMIN = "admin", "Admin"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        first_name / last_name: Display name, pushed to external systems
        role: Portal role (student, teacher, admin)
        moodle_user_id: LMS user id, set once when the LMS account exists
        incubator_user_id: Incubator user id, set once
        last_synced_at: Last time the LMS sync touched this row

    Usage:
        user = User.objects.create_user(
            email="ama@example.com",
            password="securepassword",
            first_name="Ama",
            last_name="Mensah",
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    first_name = models.CharField(max_length=150, blank=True, default="")
    last_name = models.CharField(max_length=150, blank=True, default="")

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.STUDENT,
        help_text="Portal role",
    )

    # External identities (write-once)
    moodle_user_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        unique=True,
        help_text="User id in the Moodle LMS",
    )
    incubator_user_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        unique=True,
        help_text="User id in the talent incubator",
    )
    last_synced_at = models.DateTimeField(null=True, blank=True)

    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split("@")[0]

    @property
    def lms_username(self) -> str:
        """Username used when creating the LMS account: ``<local part>_<id>``."""
        return f"{self.email.split('@')[0]}_{self.pk}"

    def link_moodle_account(self, moodle_user_id: int) -> bool:
        """
        Store the LMS user id unless one is already stored.

        Returns:
            True if this call stored the id, False if an id was already set.
            The instance is refreshed either way.
        """
        updated = type(self).objects.filter(
            pk=self.pk, moodle_user_id__isnull=True
        ).update(moodle_user_id=moodle_user_id)
        self.refresh_from_db(fields=["moodle_user_id"])
        return bool(updated)

    def link_incubator_account(self, incubator_user_id: str) -> bool:
        """Store the incubator user id unless one is already stored."""
        updated = type(self).objects.filter(
            pk=self.pk, incubator_user_id__isnull=True
        ).update(incubator_user_id=incubator_user_id)
        self.refresh_from_db(fields=["incubator_user_id"])
        return bool(updated)
