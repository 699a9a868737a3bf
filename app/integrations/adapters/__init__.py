"""
Clients for the external systems the portal synchronizes with.
"""

from integrations.adapters.incubator_adapter import IncubatorAdapter
from integrations.adapters.moodle_adapter import MoodleAdapter

__all__ = [
    "IncubatorAdapter",
    "MoodleAdapter",
]
