"""
Notifications app: transactional email and realtime push.

This app provides:
- EmailService for rendering and sending template emails
- EmailProcessor, the handlers for the email queue
- RealtimeEmitter for pushing events to a user's open browser tabs
- UserEventsConsumer, the WebSocket endpoint at ws/events/

Usage:
    from notifications.realtime import RealtimeEmitter

    RealtimeEmitter().emit_to_user(user.id, "payment:verified", {"reference": ref})
"""
