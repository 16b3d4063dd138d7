"""Tests for logging configuration."""

import json
import logging
import sys

from elb_reconciler.config import LoggingConfig
from elb_reconciler.logging_config import JSONFormatter, TextFormatter, configure_logging


class TestJSONFormatter:
    def test_formats_as_json(self):
        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="hello %s", args=("world",), exc_info=None,
        )
        output = formatter.format(record)
        parsed = json.loads(output)
        assert parsed["message"] == "hello world"
        assert parsed["level"] == "INFO"
        assert "timestamp" in parsed

    def test_includes_extra_fields(self):
        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="test", args=(), exc_info=None,
        )
        record.load_balancer = "lb-web"  # type: ignore
        record.zones = ["us-east-1a"]  # type: ignore
        record.updated = False  # type: ignore
        output = formatter.format(record)
        parsed = json.loads(output)
        assert parsed["load_balancer"] == "lb-web"
        assert parsed["zones"] == ["us-east-1a"]
        assert parsed["updated"] is False

    def test_includes_pass_summary(self):
        formatter = JSONFormatter()
        record = logging.LogRecord(
            name="test", level=logging.INFO, pathname="", lineno=0,
            msg="Reconciliation pass complete", args=(), exc_info=None,
        )
        record.summary = {"registered": 1, "deregistered": 0}  # type: ignore
        parsed = json.loads(formatter.format(record))
        assert parsed["summary"] == {"registered": 1, "deregistered": 0}

    def test_includes_exception(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord(
                name="test", level=logging.ERROR, pathname="", lineno=0,
                msg="failed", args=(), exc_info=sys.exc_info(),
            )
        parsed = json.loads(formatter.format(record))
        assert "ValueError: boom" in parsed["exception"]


class TestConfigureLogging:
    def test_json_format(self):
        configure_logging(LoggingConfig(level="DEBUG", format="json"))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, JSONFormatter) for h in root.handlers)

    def test_text_format(self):
        configure_logging(LoggingConfig(level="WARNING", format="text"))
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert any(isinstance(h.formatter, TextFormatter) for h in root.handlers)

    def test_suppresses_noisy_loggers(self):
        configure_logging(LoggingConfig())
        assert logging.getLogger("botocore").level >= logging.WARNING
        assert logging.getLogger("urllib3").level >= logging.WARNING
