"""Tests for CLI logging setup."""

import io
import json
import logging
import sys

from cwa_quicktest.infrastructure.logging_config import StructuredFormatter, setup_logging


def _make_record(**extra):
    record = logging.LogRecord(
        name="cwa_quicktest.adapters.result_client",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg="Submitting %d test result(s)",
        args=(2,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_basic_fields(self):
        """Test the standard JSON fields."""
        output = json.loads(StructuredFormatter("cwa-quicktest").format(_make_record()))
        assert output["app"] == "cwa-quicktest"
        assert output["level"] == "INFO"
        assert output["logger"] == "cwa_quicktest.adapters.result_client"
        assert output["message"] == "Submitting 2 test result(s)"
        assert output["line"] == 42
        assert output["timestamp"].endswith("Z")
        assert "stage" not in output

    def test_submission_context(self):
        """Test that submission context becomes top-level keys."""
        record = _make_record(stage="WRU", endpoint="https://example.invalid", result_count=2, status_code=400)
        output = json.loads(StructuredFormatter("cwa-quicktest").format(record))
        assert output["stage"] == "WRU"
        assert output["endpoint"] == "https://example.invalid"
        assert output["result_count"] == 2
        assert output["status_code"] == 400

    def test_exception_info(self):
        """Test that exceptions are rendered."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _make_record()
            record.exc_info = sys.exc_info()
        output = json.loads(StructuredFormatter("cwa-quicktest").format(record))
        assert "RuntimeError: boom" in output["exception"]


class TestSetupLogging:
    def test_logs_go_to_stderr_by_default(self, restore_root_logger):
        """Test that stdout stays free for command output."""
        handler = setup_logging()
        assert handler.stream is sys.stderr
        assert restore_root_logger.handlers == [handler]

    def test_json_lines(self, restore_root_logger):
        """Test that JSON logging writes one object per record."""
        stream = io.StringIO()
        setup_logging(use_json=True, app_name="site-42", stream=stream)

        logging.getLogger("cwa_quicktest.adapters.result_client").info(
            "Submitting 1 test result(s)", extra={"stage": "INT", "result_count": 1}
        )

        line = json.loads(stream.getvalue().strip())
        assert line["app"] == "site-42"
        assert line["stage"] == "INT"
        assert line["result_count"] == 1

    def test_http_loggers_quiet_unless_verbose(self, restore_root_logger):
        """Test that httpx request logs are only shown at DEBUG."""
        setup_logging(log_level="INFO")
        assert logging.getLogger("httpx").level == logging.WARNING

        setup_logging(log_level="debug")
        assert restore_root_logger.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.DEBUG
        assert logging.getLogger("httpcore").level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        """Test that an unknown level name falls back to INFO."""
        handler = setup_logging(log_level="LOUD")
        assert restore_root_logger.level == logging.INFO
        assert not isinstance(handler.formatter, StructuredFormatter)
