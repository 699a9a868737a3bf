"""
WebSocket URL routing for portal events.

URL Patterns:
    ws/events/ - The signed-in user's event stream
"""

from django.urls import path

from notifications import consumers

websocket_urlpatterns = [
    path("ws/events/", consumers.UserEventsConsumer.as_asgi()),
]
