"""
Integrations app configuration.

This app provides the clients and sync services for the external systems
the portal mirrors: the Moodle LMS and the talent incubator.
"""

from django.apps import AppConfig


class IntegrationsConfig(AppConfig):
    """Configuration for the integrations application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "integrations"
    verbose_name = "Integrations"
