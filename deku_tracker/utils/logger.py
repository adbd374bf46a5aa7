"""
Logger module - entry point every tracker module uses for logging.

    from deku_tracker.utils.logger import get_logger
    logger = get_logger(__name__)

The first call configures ComprehensiveLogger from config.properties and the
DEKU_LOG_* environment variables.
"""

import threading
from typing import Optional

from .comprehensive_logger import ComprehensiveLogger, TaskLogger

_initialized = False
_init_lock = threading.Lock()


def _initialize_from_config() -> None:
    global _initialized

    if _initialized:
        return
    with _init_lock:
        if _initialized:
            return
        # Imported lazily: deku_tracker.config depends on deku_tracker.utils.
        from deku_tracker.config.config_properties import ConfigProperties

        ConfigProperties.load_env_file()
        ComprehensiveLogger.initialize(**ConfigProperties.get_logging_config())
        _initialized = True


def get_logger(name: str, level: Optional[str] = None) -> TaskLogger:
    """
    Get the tracker logger for ``name``.

    Args:
        name: Logger name (typically __name__)
        level: Optional level override for this logger only
    """
    _initialize_from_config()
    task_logger = ComprehensiveLogger.get_logger(name)
    if level:
        task_logger.set_level(level)
    return task_logger
