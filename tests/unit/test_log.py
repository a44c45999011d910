"""
Unit tests for logging setup.
"""

import logging

import pytest

from servipro.log import setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestSetupLogging:

    @pytest.mark.unit
    def test_console_only(self, restore_root_logger):
        root = setup_logging("WARNING")

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    @pytest.mark.unit
    def test_file_sinks(self, tmp_path, restore_root_logger):
        setup_logging("DEBUG", log_dir=str(tmp_path / "logs"))

        logging.getLogger("servipro.test").info("informativo")
        logging.getLogger("servipro.test").error("fallo")
        for handler in logging.getLogger().handlers:
            handler.flush()

        combined = (tmp_path / "logs" / "combined.log").read_text(encoding="utf-8")
        errors = (tmp_path / "logs" / "error.log").read_text(encoding="utf-8")
        assert "informativo" in combined and "fallo" in combined
        assert "fallo" in errors
        assert "informativo" not in errors
        assert "| ERROR    | servipro.test | fallo" in errors
