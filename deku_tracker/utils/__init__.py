"""
Utilities module - Logging and error types
"""

from .logger import get_logger
from .exceptions import (
    TrackerError,
    ConfigurationError,
    ValidationError,
    InvalidParameterError,
    MissingParameterError,
    NotFoundError,
    TaskNotFoundError,
    InvalidOperationError,
    PersistenceError,
    NetworkError,
)

__all__ = [
    'get_logger',
    'TrackerError',
    'ConfigurationError',
    'ValidationError',
    'InvalidParameterError',
    'MissingParameterError',
    'NotFoundError',
    'TaskNotFoundError',
    'InvalidOperationError',
    'PersistenceError',
    'NetworkError',
]
