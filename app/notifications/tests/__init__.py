"""
Tests for the notifications app.

This package contains test modules for:
- test_email.py: EmailService rendering and sending
- test_processors.py: Email queue handlers
- test_realtime.py: RealtimeEmitter and UserEventsConsumer

Usage:
    pytest notifications/tests/
"""
