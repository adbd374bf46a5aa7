"""
Client module - HTTP API client and reconnecting update listener
"""

from .api_client import TrackerClient
from .update_listener import UpdateListener

__all__ = [
    'TrackerClient',
    'UpdateListener',
]
