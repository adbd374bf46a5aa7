"""
Tracker configuration - Settings for the task store, server and update channel
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any
from pathlib import Path

from .config_properties import ConfigProperties
from deku_tracker.utils.exceptions import ConfigurationError


VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class TrackerConfig:
    """
    Configuration settings for the Deku Task Tracker.

    Attributes:
        db_path: JSON file holding the task list (None keeps tasks in memory only)
        host: Interface the HTTP server binds to
        port: Port the HTTP server binds to
        queue_size: Pending change signals kept per subscriber before dropping
        reconnect_delay: Seconds a client waits before reopening the update stream
        log_level: Logging level (default: 'INFO')
    """

    db_path: Optional[str] = "data/tasks.json"
    host: str = "127.0.0.1"
    port: int = 8080
    queue_size: int = 16
    reconnect_delay: float = 1.0
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not 0 < self.port < 65536:
            raise ConfigurationError("port", "must be between 1 and 65535", actual_value=self.port)

        if self.queue_size < 1:
            raise ConfigurationError("queue_size", "must be at least 1", actual_value=self.queue_size)

        if self.reconnect_delay < 0:
            raise ConfigurationError(
                "reconnect_delay", "cannot be negative", actual_value=self.reconnect_delay
            )

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                "log_level", "is not a known level",
                expected_value=", ".join(VALID_LOG_LEVELS), actual_value=self.log_level,
            )

    @property
    def db_file(self) -> Optional[Path]:
        """Absolute path of the task file, if persistence is enabled."""
        return Path(self.db_path).resolve() if self.db_path else None

    @classmethod
    def from_env(cls, prefix: str = "DEKU_") -> "TrackerConfig":
        """
        Create configuration from environment variables, falling back to
        dot-notation keys in config.properties.

        Example:
            export DEKU_DB_PATH=./data/tasks.json
            export DEKU_PORT=9000
            config = TrackerConfig.from_env()
        """
        ConfigProperties.load_env_file()

        def pick(env_key: str, prop_key: str, default: str) -> str:
            return ConfigProperties.setting(f"{prefix}{env_key}", prop_key, default)

        def number(env_key: str, prop_key: str, default: str, cast):
            raw = pick(env_key, prop_key, default)
            try:
                return cast(raw)
            except ValueError as exc:
                raise ConfigurationError(
                    f"{prefix}{env_key}", "must be a number", actual_value=raw
                ) from exc

        db_path = pick("DB_PATH", "tracker.db_path", "data/tasks.json")
        port = number("PORT", "server.port", "8080", int)
        queue_size = number("QUEUE_SIZE", "notify.queue_size", "16", int)
        reconnect_delay = number("RECONNECT_DELAY", "notify.reconnect_delay", "1.0", float)

        return cls(
            db_path=db_path or None,
            host=pick("HOST", "server.host", "127.0.0.1"),
            port=port,
            queue_size=queue_size,
            reconnect_delay=reconnect_delay,
            log_level=pick("LOG_LEVEL", "logging.level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "db_path": str(self.db_file) if self.db_file else None,
            "host": self.host,
            "port": self.port,
            "queue_size": self.queue_size,
            "reconnect_delay": self.reconnect_delay,
            "log_level": self.log_level,
        }
