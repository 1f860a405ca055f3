"""Unit tests for structured logging setup."""
import sys
import json
import logging
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from logger import JSONFormatter, setup_logging


def make_record(message="Query reformulated", level=logging.INFO, exc_info=None, **extra):
    record = logging.LogRecord(
        name="services.query_reformulator",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_base_fields(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "services.query_reformulator"
        assert data["message"] == "Query reformulated"
        assert data["timestamp"].endswith("Z")
        assert "exception" not in data

    def test_extra_fields_included(self):
        record = make_record(original="how instal", revised="installation steps", tokens=48)

        data = json.loads(JSONFormatter().format(record))

        assert data["original"] == "how instal"
        assert data["revised"] == "installation steps"
        assert data["tokens"] == 48
        assert "pathname" not in data
        assert "lineno" not in data

    def test_exception_included(self):
        try:
            raise RuntimeError("Vector search failed")
        except RuntimeError:
            exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(make_record("boom", logging.ERROR, exc_info=exc_info)))

        assert "RuntimeError: Vector search failed" in data["exception"]

    def test_non_serializable_extra(self):
        data = json.loads(JSONFormatter().format(make_record(details={"path": Path("/tmp/x")})))
        assert data["details"] == {"path": "/tmp/x"}


class TestSetupLogging:
    """Test suite for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root_logger = logging.getLogger()
        handlers = list(root_logger.handlers)
        level = root_logger.level
        yield
        root_logger.handlers = handlers
        root_logger.setLevel(level)

    def installed_handlers(self):
        return [h for h in logging.getLogger().handlers if getattr(h, "_docai_handler", False)]

    def test_json_handler(self):
        setup_logging("DEBUG", json_format=True)

        handlers = self.installed_handlers()
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JSONFormatter)
        assert logging.getLogger().level == logging.DEBUG

    def test_text_handler(self):
        setup_logging("WARNING", json_format=False)

        handlers = self.installed_handlers()
        assert not isinstance(handlers[0].formatter, JSONFormatter)
        assert logging.getLogger().level == logging.WARNING

    def test_repeated_setup_replaces_handler(self):
        setup_logging("INFO")
        setup_logging("INFO")

        assert len(self.installed_handlers()) == 1

    def test_unknown_level_defaults_to_info(self):
        setup_logging("LOUD")
        assert logging.getLogger().level == logging.INFO
