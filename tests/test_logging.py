#!/usr/bin/env python3
"""
Tests for the shared log file, structured context and runtime level changes.
"""

import logging

from deku_tracker.config import ConfigProperties
from deku_tracker.utils.comprehensive_logger import ComprehensiveLogger
from deku_tracker.utils.exceptions import PersistenceError
from deku_tracker.utils.logger import get_logger


class TestComprehensiveLogger:

    def setup_method(self):
        self.log_folder = None

    def teardown_method(self):
        ComprehensiveLogger.initialize(**ConfigProperties.get_logging_config())

    def start(self, tmp_path, level="INFO"):
        ComprehensiveLogger.initialize(
            log_folder=str(tmp_path),
            log_level=level,
            enable_console=False,
            enable_file=True,
            max_bytes=1024 * 1024,
            backup_count=1,
        )
        return tmp_path / ComprehensiveLogger.LOG_FILE

    def read(self, log_file):
        ComprehensiveLogger.flush()
        return log_file.read_text(encoding="utf-8")

    def test_context_appended_as_json(self, tmp_path):
        log_file = self.start(tmp_path)

        get_logger("deku_test.context").info("Added new task: Buy milk", extra={"id": "t1", "cycle": "1d"})

        content = self.read(log_file)
        assert ComprehensiveLogger.log_file() == log_file
        assert 'Added new task: Buy milk | {"id": "t1", "cycle": "1d"}' in content
        assert "deku_test.context" in content

    def test_existing_loggers_follow_reinitialize(self, tmp_path):
        early = get_logger("deku_test.early")
        log_file = self.start(tmp_path)

        early.warning("after reinitialize")

        assert "after reinitialize" in self.read(log_file)

    def test_level_filtering_and_runtime_change(self, tmp_path):
        log_file = self.start(tmp_path, level="WARNING")
        task_logger = get_logger("deku_test.levels")

        task_logger.info("hidden")
        task_logger.warning("shown")
        ComprehensiveLogger.set_level("DEBUG")
        task_logger.debug("now visible")

        content = self.read(log_file)
        assert "hidden" not in content
        assert "shown" in content
        assert "now visible" in content
        assert task_logger.logger.level == logging.DEBUG

    def test_log_exception_includes_traceback(self, tmp_path):
        log_file = self.start(tmp_path)

        try:
            raise PersistenceError("tasks.json", "write", "disk full")
        except PersistenceError as e:
            get_logger("deku_test.exceptions").log_exception("Save failed", e)

        content = self.read(log_file)
        assert "Save failed" in content
        assert "Traceback" in content
        assert "PersistenceError" in content

    def test_file_logging_disabled(self, tmp_path):
        ComprehensiveLogger.initialize(log_folder=str(tmp_path / "off"), enable_console=False, enable_file=False)

        get_logger("deku_test.disabled").error("nowhere")

        assert ComprehensiveLogger.log_file() is None
        assert not (tmp_path / "off").exists()
