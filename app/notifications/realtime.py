"""
Server-to-browser push over the Channels layer.

Every signed-in browser tab joins the group ``user_{id}`` (see
consumers.UserEventsConsumer). Processors push named events into that group;
the consumer forwards them to the socket as ``{"event": ..., "data": ...}``.

Emission is fire-and-forget: a missing channel layer or a publish error is
logged and swallowed, never propagated into the job that emitted.

Usage:
    from notifications.realtime import RealtimeEmitter

    RealtimeEmitter().emit_to_user(
        user.id,
        "payment:verified",
        {"reference": payment.reference, "status": "success"},
    )
"""

from __future__ import annotations

import logging
from typing import Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

EVENT_MESSAGE_TYPE = "portal.event"


def user_group_name(user_id: int | str) -> str:
    return f"user_{user_id}"


class RealtimeEmitter:
    """Publishes portal events to a user's channel group."""

    def __init__(self, channel_layer=None):
        self._channel_layer = channel_layer

    @property
    def channel_layer(self):
        if self._channel_layer is None:
            self._channel_layer = get_channel_layer()
        return self._channel_layer

    def emit_to_user(self, user_id: int | str | None, event: str, payload: dict[str, Any]) -> bool:
        """
        Push ``event`` to every socket of ``user_id``.

        Returns:
            True if the message was handed to the channel layer
        """
        if not user_id:
            return False

        layer = self.channel_layer
        if layer is None:
            logger.warning(
                "No channel layer configured, realtime event dropped",
                extra={"event": event, "user_id": user_id},
            )
            return False

        try:
            async_to_sync(layer.group_send)(
                user_group_name(user_id),
                {"type": EVENT_MESSAGE_TYPE, "event": event, "data": payload},
            )
        except Exception as e:
            logger.warning(
                f"Failed to emit realtime event: {type(e).__name__}",
                extra={"event": event, "user_id": user_id},
                exc_info=True,
            )
            return False

        logger.debug("Realtime event emitted", extra={"event": event, "user_id": user_id})
        return True
