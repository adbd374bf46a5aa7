"""
Deku Task Tracker web API - REST endpoints for tasks and live change
signals over Server-Sent Events and WebSocket
"""

__version__ = "1.0.0"
