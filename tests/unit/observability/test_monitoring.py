"""
stagecache - Logging Setup Tests
"""

import json
import logging
import sys

from stagecache.observability import JSONFormatter, configure_logging


class TestJSONFormatter:
    """Test suite for structured log output."""

    def _record(self, **extra: object) -> logging.LogRecord:
        record = logging.LogRecord(
            name="stagecache.cache.backends.filesystem",
            level=logging.WARNING,
            pathname=__file__,
            lineno=10,
            msg="Cache entry file missing for %s",
            args=("abc",),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_basic_fields(self) -> None:
        data = json.loads(JSONFormatter().format(self._record()))

        assert data["level"] == "WARNING"
        assert data["logger"] == "stagecache.cache.backends.filesystem"
        assert data["message"] == "Cache entry file missing for abc"
        assert data["timestamp"].endswith("Z")

    def test_extra_fields_included(self) -> None:
        data = json.loads(JSONFormatter().format(self._record(encoded_key="abc", entries=3)))

        assert data["encoded_key"] == "abc"
        assert data["entries"] == 3
        assert "args" not in data

    def test_non_json_extras_stringified(self) -> None:
        data = json.loads(JSONFormatter().format(self._record(failed={"k"})))
        assert data["failed"] == "{'k'}"

    def test_exception_text(self) -> None:
        try:
            raise OSError("disk gone")
        except OSError:
            record = self._record()
            record.exc_info = sys.exc_info()

        data = json.loads(JSONFormatter().format(record))
        assert "disk gone" in data["exception"]


class TestConfigureLogging:
    """Test suite for configure_logging()."""

    def test_single_handler(self) -> None:
        logger = configure_logging("DEBUG", "json")
        configure_logging("INFO", "json")

        try:
            assert len(logger.handlers) == 1
            assert isinstance(logger.handlers[0].formatter, JSONFormatter)
            assert logger.level == logging.INFO
        finally:
            logger.handlers.clear()
            logger.propagate = True

    def test_text_format(self) -> None:
        logger = configure_logging("warning", "text")

        try:
            assert not isinstance(logger.handlers[0].formatter, JSONFormatter)
            assert logger.level == logging.WARNING
        finally:
            logger.handlers.clear()
            logger.propagate = True
