"""
Authentication application.

Provides the portal User model: email login, portal role, and the
write-once LMS (Moodle) and incubator account ids.

Usage:
    from authentication.models import User, UserRole
"""
