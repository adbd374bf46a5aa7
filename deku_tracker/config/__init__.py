"""
Configuration module - Settings and configuration management
"""

from .config_properties import ConfigProperties
from .tracker_config import TrackerConfig

__all__ = [
    'ConfigProperties',
    'TrackerConfig',
]
