"""
Tests for the authentication app.

This package contains test modules for:
- test_models.py: User model and write-once external identity links
- test_managers.py: UserManager creation rules

Usage:
    pytest authentication/tests/
"""
