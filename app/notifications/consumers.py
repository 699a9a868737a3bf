"""
WebSocket consumer for portal events.

Consumers:
    UserEventsConsumer: One connection per browser tab, subscribed to the
        signed-in user's event group

Authentication:
    The session is resolved by Channels' AuthMiddlewareStack, which attaches
    the user to self.scope["user"]. Anonymous connections are closed with
    code 4001.

Channel Groups:
    Each user has a group named "user_{user_id}". RealtimeEmitter sends
    ``{"type": "portal.event", "event": ..., "data": ...}`` messages into it.

Message Types (to client):
    {"event": "payment:verified", "data": {...}}
    {"event": "payment:failed", "data": {...}}
    {"event": "enrollment:moodle-synced", "data": {...}}
"""

from __future__ import annotations

import logging

from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.contrib.auth.models import AnonymousUser

from notifications.realtime import user_group_name

logger = logging.getLogger(__name__)


class UserEventsConsumer(AsyncJsonWebsocketConsumer):
    """Push-only consumer; messages from the client are ignored."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.group_name: str | None = None

    async def connect(self):
        user = self.scope.get("user")

        if not user or isinstance(user, AnonymousUser) or not user.is_authenticated:
            logger.warning("Rejected unauthenticated events connection")
            await self.close(code=4001)
            return

        self.group_name = user_group_name(user.id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"User {user.id} connected to portal events")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info(f"Portal events connection closed ({self.group_name}, code {close_code})")

    async def receive_json(self, content, **kwargs):
        pass

    async def portal_event(self, event):
        """Handle portal.event messages from the channel layer."""
        await self.send_json({"event": event["event"], "data": event.get("data", {})})
