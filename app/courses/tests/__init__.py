"""
Tests for the courses app.

This package contains test modules for:
- test_models.py: Enrollment state machines
- test_processors.py: Enrollment queue handlers and progress calculation

Usage:
    pytest courses/tests/
"""
