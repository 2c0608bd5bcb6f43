"""
Tests for logging setup: it runs at app startup, not on import, and only
ever replaces its own handler.
"""
import json
import logging
import subprocess
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.logging import HANDLER_NAME, JSONFormatter, setup_logging
from app.main import app

ROOT_DIR = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def own_handlers(root):
    return [h for h in root.handlers if h.get_name() == HANDLER_NAME]


class TestSetupLogging:
    def test_keeps_foreign_handlers(self, restore_root_logger):
        root = restore_root_logger
        sentinel = logging.NullHandler()
        root.addHandler(sentinel)

        setup_logging()

        assert sentinel in root.handlers
        assert len(own_handlers(root)) == 1

    def test_repeated_calls_do_not_stack(self, restore_root_logger):
        setup_logging()
        setup_logging()
        setup_logging()
        assert len(own_handlers(restore_root_logger)) == 1

    def test_json_format_in_production(self, restore_root_logger, monkeypatch):
        monkeypatch.setattr(settings, "APP_ENV", "production")
        setup_logging()
        (handler,) = own_handlers(restore_root_logger)
        assert isinstance(handler.formatter, JSONFormatter)

    def test_json_formatter_fields(self):
        record = logging.LogRecord("app.x", logging.WARNING, __file__, 12, "hit %s", ("limit",), None)
        payload = json.loads(JSONFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "app.x"
        assert payload["message"] == "hit limit"
        assert payload["line"] == 12


class TestStartupHook:
    def test_app_startup_installs_handler(self, restore_root_logger):
        root = restore_root_logger
        sentinel = logging.NullHandler()
        root.addHandler(sentinel)

        with TestClient(app):
            assert sentinel in root.handlers
            assert len(own_handlers(root)) == 1

    def test_import_leaves_logging_alone(self):
        code = (
            "import logging\n"
            "sentinel = logging.NullHandler()\n"
            "logging.getLogger().addHandler(sentinel)\n"
            "import app.main\n"
            "print(logging.getLogger().handlers == [sentinel])\n"
        )
        result = subprocess.run(
            [sys.executable, "-c", code], cwd=ROOT_DIR, capture_output=True, text=True, check=True,
        )
        assert result.stdout.strip() == "True"
