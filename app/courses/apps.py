"""
Courses app configuration.

This app provides the course catalog and enrollments:
- Course, CourseModule, Enrollment and StudentProgress models
- EnrollmentProcessor handlers for the enrollment queue
"""

from django.apps import AppConfig


class CoursesConfig(AppConfig):
    """Configuration for the courses application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "courses"
    verbose_name = "Courses"
