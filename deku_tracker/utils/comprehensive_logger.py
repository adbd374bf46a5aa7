"""
Comprehensive Logging System with File and Console Output

All tracker loggers share one set of handlers:
- a console handler that never fails on characters the terminal can't encode
- a rotating file handler writing ``deku_tracker.log`` in the log folder

Structured context passed as ``extra`` is appended to the message as JSON,
so a log line can be grepped by task id.

Usage:
    ComprehensiveLogger.initialize(log_folder="./logs", log_level="DEBUG")
    logger = ComprehensiveLogger.get_logger(__name__)
    logger.info("Added new task", extra={"id": task_id, "cycle": "1d"})
"""

import json
import logging
import logging.handlers
import sys
import traceback
from pathlib import Path
from typing import Any, Dict, List, Optional

CONSOLE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'
FILE_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def _to_level(level: Any) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


class SafeStreamHandler(logging.StreamHandler):
    """Console handler that replaces unencodable characters instead of raising."""

    def emit(self, record):
        try:
            text = self.format(record) + self.terminator
            encoding = getattr(self.stream, "encoding", None) or "utf-8"
            self.stream.write(text.encode(encoding, errors="replace").decode(encoding))
            self.flush()
        except Exception:
            self.handleError(record)


class ComprehensiveLogger:
    """Process-wide logging setup for the tracker."""

    LOG_FILE = "deku_tracker.log"

    _loggers: Dict[str, "TaskLogger"] = {}
    _handlers: List[logging.Handler] = []
    _level: int = logging.INFO
    _log_file: Optional[Path] = None

    @classmethod
    def initialize(
        cls,
        log_folder: Optional[str] = None,
        log_level: str = "INFO",
        enable_console: bool = True,
        enable_file: bool = True,
        max_bytes: int = 10 * 1024 * 1024,  # 10MB
        backup_count: int = 5
    ) -> None:
        """
        (Re)build the shared handlers and attach them to every logger.

        Args:
            log_folder: Folder for deku_tracker.log (default: ./logs)
            log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
            enable_console: Log to stdout
            enable_file: Log to a rotating file
            max_bytes: File size that triggers rotation
            backup_count: Rotated files to keep
        """
        cls.shutdown()
        cls._level = _to_level(log_level)

        if enable_console:
            console = SafeStreamHandler(sys.stdout)
            console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
            cls._handlers.append(console)

        if enable_file:
            folder = Path(log_folder or "./logs")
            try:
                folder.mkdir(parents=True, exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    folder / cls.LOG_FILE,
                    maxBytes=max_bytes,
                    backupCount=backup_count,
                    encoding='utf-8'
                )
            except OSError as e:
                print(f"Warning: file logging disabled, cannot open {folder / cls.LOG_FILE}: {e}", file=sys.stderr)
            else:
                file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
                cls._handlers.append(file_handler)
                cls._log_file = folder / cls.LOG_FILE

        for task_logger in cls._loggers.values():
            task_logger.attach(cls._handlers, cls._level)

    @classmethod
    def get_logger(cls, name: str) -> "TaskLogger":
        if name not in cls._loggers:
            task_logger = TaskLogger(name)
            task_logger.attach(cls._handlers, cls._level)
            cls._loggers[name] = task_logger
        return cls._loggers[name]

    @classmethod
    def set_level(cls, level: Any) -> None:
        """Change the level of every tracker logger at runtime."""
        cls._level = _to_level(level)
        for task_logger in cls._loggers.values():
            task_logger.logger.setLevel(cls._level)

    @classmethod
    def log_file(cls) -> Optional[Path]:
        return cls._log_file

    @classmethod
    def flush(cls):
        for handler in cls._handlers:
            handler.flush()

    @classmethod
    def shutdown(cls) -> None:
        """Detach and close the shared handlers."""
        for task_logger in cls._loggers.values():
            task_logger.detach(cls._handlers)
        for handler in cls._handlers:
            handler.close()
        cls._handlers = []
        cls._log_file = None


class TaskLogger:
    """Thin wrapper over a stdlib logger that accepts JSON context."""

    def __init__(self, name: str):
        self.name = name
        self.logger = logging.getLogger(name)

    def attach(self, handlers: List[logging.Handler], level: int) -> None:
        self.logger.setLevel(level)
        for handler in handlers:
            if handler not in self.logger.handlers:
                self.logger.addHandler(handler)

    def detach(self, handlers: List[logging.Handler]) -> None:
        for handler in handlers:
            self.logger.removeHandler(handler)

    def set_level(self, level: Any) -> None:
        self.logger.setLevel(_to_level(level))

    def debug(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.DEBUG, message, extra)

    def info(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.INFO, message, extra)

    def warning(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.WARNING, message, extra)

    def error(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.ERROR, message, extra)

    def critical(self, message: str, extra: Optional[Dict] = None):
        self._log(logging.CRITICAL, message, extra)

    def _log(self, level: int, message: str, extra: Optional[Dict] = None) -> None:
        if not self.logger.isEnabledFor(level):
            return
        if extra:
            message = f"{message} | {json.dumps(extra, default=str)}"
        # stacklevel points funcName/lineno at the caller, not this wrapper
        self.logger.log(level, message, stacklevel=3)

    def log_exception(self, message: str, exc: Optional[BaseException] = None) -> None:
        """Log at ERROR with the traceback of ``exc`` (or the exception being handled)."""
        if exc is not None:
            trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        else:
            trace = traceback.format_exc()
        self.logger.error(f"{message}\n{trace}", stacklevel=2)

    def flush(self) -> None:
        for handler in self.logger.handlers:
            handler.flush()
