"""
Configuration Properties - reads config.properties for the tracker.

The file uses Java properties syntax. Two kinds of keys live in it:

- dot-notation keys (``server.port``, ``tracker.db_path``) read through
  :meth:`ConfigProperties.get` and friends;
- plain upper-case keys (``DEKU_LOG_LEVEL``) that are copied into
  ``os.environ`` so they behave like environment variables.

Environment variables always take precedence over the file.

The file is found through ``DEKU_CONFIG``, then the project root, then the
current directory and up to three of its parents.
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Tuple

CONFIG_FILE_NAME = "config.properties"
CONFIG_PATH_ENV = "DEKU_CONFIG"

_TRUE_VALUES = ("true", "1", "yes", "on")


class ConfigProperties:
    """
    Class-level cache of the parsed config.properties.

    Quick usage::

        ConfigProperties.load_env_file()                 # parse once, export plain keys
        ConfigProperties.get_int("server.port", 8080)    # dot-notation lookup
        ConfigProperties.setting("DEKU_PORT", "server.port", "8080")
    """

    _properties: Dict[str, str] = {}
    _loaded: bool = False
    _source: Optional[Path] = None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Optional[str] = None) -> Dict[str, str]:
        """
        Parse config.properties once; later calls return the cached values.

        Args:
            path: Explicit file; discovered when omitted.
        """
        if cls._loaded:
            return cls._properties

        config_path = Path(path) if path else cls._find_config_file()
        cls._properties = {}
        cls._source = None
        if config_path and config_path.is_file():
            with open(config_path, "r", encoding="utf-8") as f:
                cls._properties = dict(_parse_properties(f))
            cls._source = config_path

        cls._loaded = True
        return cls._properties

    @classmethod
    def load_env_file(cls, path: Optional[str] = None) -> bool:
        """
        Load config.properties and export its plain keys to os.environ.

        Returns:
            True if a file with at least one key was found.
        """
        try:
            cls.load(path)
        except OSError as exc:
            print(f"Warning: cannot read {CONFIG_FILE_NAME}: {exc}")
            cls._loaded = True
            return False
        cls.load_to_env()
        return bool(cls._properties)

    @classmethod
    def load_to_env(cls) -> None:
        """Copy plain keys into os.environ without overriding what is already set."""
        for key, value in cls.load().items():
            if "." not in key:
                os.environ.setdefault(key, value)

    @classmethod
    def reload(cls, path: Optional[str] = None) -> Dict[str, str]:
        """Drop the cache and parse again."""
        cls._loaded = False
        return cls.load(path)

    @classmethod
    def source(cls) -> Optional[Path]:
        """File the properties came from, if any."""
        return cls._source

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        return cls.load().get(key, default)

    @classmethod
    def get_bool(cls, key: str, default: bool = False) -> bool:
        val = cls.get(key)
        return default if val is None else val.lower() in _TRUE_VALUES

    @classmethod
    def get_int(cls, key: str, default: int = 0) -> int:
        try:
            return int(cls.get(key, str(default)))
        except ValueError:
            return default

    @classmethod
    def get_float(cls, key: str, default: float = 0.0) -> float:
        try:
            return float(cls.get(key, str(default)))
        except ValueError:
            return default

    @classmethod
    def get_section(cls, prefix: str) -> Dict[str, str]:
        """All keys under a dot-notation prefix, with the prefix removed."""
        prefix_dot = prefix.rstrip(".") + "."
        return {
            key[len(prefix_dot):]: val
            for key, val in cls.load().items()
            if key.startswith(prefix_dot)
        }

    @classmethod
    def setting(cls, env_key: str, prop_key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Resolve one setting: environment variable, then property, then default.

        An environment variable set to "" still wins; it means "explicitly empty".
        """
        value = os.environ.get(env_key)
        if value is not None:
            return value
        return cls.get(prop_key, default)

    @classmethod
    def setting_flag(cls, env_key: str, prop_key: str, default: bool) -> bool:
        return cls.setting(env_key, prop_key, str(default)).strip().lower() in _TRUE_VALUES

    @classmethod
    def setting_int(cls, env_key: str, prop_key: str, default: int) -> int:
        try:
            return int(cls.setting(env_key, prop_key, str(default)))
        except ValueError:
            return default

    @classmethod
    def get_logging_config(cls) -> Dict[str, Any]:
        """Keyword arguments for ``ComprehensiveLogger.initialize()``."""
        return {
            "log_folder":     cls.setting("DEKU_LOG_FOLDER", "logging.folder", "./logs"),
            "log_level":      cls.setting("DEKU_LOG_LEVEL", "logging.level", "INFO"),
            "enable_console": cls.setting_flag("DEKU_ENABLE_CONSOLE_LOGGING", "logging.console", True),
            "enable_file":    cls.setting_flag("DEKU_ENABLE_FILE_LOGGING", "logging.file", True),
            "max_bytes":      cls.setting_int("DEKU_LOG_MAX_BYTES", "logging.max_bytes", 10485760),
            "backup_count":   cls.setting_int("DEKU_LOG_BACKUP_COUNT", "logging.backup_count", 5),
        }

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        explicit = os.environ.get(CONFIG_PATH_ENV)
        if explicit:
            return Path(explicit)

        project_root = Path(__file__).resolve().parent.parent.parent / CONFIG_FILE_NAME
        if project_root.is_file():
            return project_root

        current = Path.cwd()
        for directory in [current, *list(current.parents)[:3]]:
            candidate = directory / CONFIG_FILE_NAME
            if candidate.is_file():
                return candidate
        return None


def _logical_lines(lines) -> Iterator[str]:
    """Join lines ending in an odd number of backslashes with the next one."""
    pending = ""
    for raw in lines:
        line = raw.rstrip("\r\n")
        stripped = line.lstrip() if pending else line.strip()
        if not pending and (not stripped or stripped[0] in "#!"):
            continue
        trailing = len(stripped) - len(stripped.rstrip("\\"))
        if trailing % 2 == 1:
            pending += stripped[:-1]
            continue
        yield pending + stripped
        pending = ""
    if pending:
        yield pending


def _split_entry(line: str) -> Tuple[str, str]:
    """Split ``key=value``, ``key: value`` or ``key value`` at the first unescaped separator."""
    escaped = False
    for i, ch in enumerate(line):
        if escaped:
            escaped = False
            continue
        if ch == "\\":
            escaped = True
            continue
        if ch in "=:" or ch.isspace():
            key, rest = line[:i], line[i:].lstrip()
            if ch.isspace() and rest[:1] in ("=", ":"):
                rest = rest[1:].lstrip()
            elif not ch.isspace():
                rest = rest[1:].lstrip()
            return _unescape(key), _unescape(rest)
    return _unescape(line), ""


def _unescape(text: str) -> str:
    return (text.replace("\\=", "=").replace("\\:", ":")
                .replace("\\ ", " ").replace("\\\\", "\\"))


def _parse_properties(lines) -> Iterator[Tuple[str, str]]:
    for line in _logical_lines(lines):
        key, value = _split_entry(line)
        if key:
            yield key, value
