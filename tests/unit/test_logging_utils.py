#  Copyright (c) 2025 Tom Villani, Ph.D.
"""Unit tests for CLI logging set-up."""

import logging

import pytest

from comicpack.logging_utils import THIRD_PARTY_LOGGERS, configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    third_party = {name: logging.getLogger(name).level for name in THIRD_PARTY_LOGGERS}
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name, previous in third_party.items():
        logging.getLogger(name).setLevel(previous)


@pytest.mark.unit
class TestConfigureLogging:
    def test_level_by_name(self):
        root = configure_logging("debug")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        assert configure_logging("chatty").level == logging.INFO

    def test_repeated_calls_replace_handlers(self):
        configure_logging(logging.WARNING)
        assert len(configure_logging(logging.WARNING).handlers) == 1

    def test_decoders_are_quieted_unless_tracing(self):
        configure_logging("DEBUG")
        assert logging.getLogger("PIL").level == logging.INFO

        logging.getLogger("PIL").setLevel(logging.NOTSET)
        configure_logging("DEBUG", trace_mode=True)
        assert logging.getLogger("PIL").level == logging.NOTSET

    def test_log_file(self, temp_dir):
        path = temp_dir / "run.log"
        root = configure_logging("INFO", log_file=str(path))
        logging.getLogger("comicpack.test").info("hello from the job")
        for handler in root.handlers:
            handler.flush()

        assert len(root.handlers) == 2
        assert "hello from the job" in path.read_text(encoding="utf-8")

    def test_unwritable_log_file_keeps_console(self, temp_dir):
        root = configure_logging("INFO", log_file=str(temp_dir / "missing" / "run.log"))
        assert len(root.handlers) == 1
