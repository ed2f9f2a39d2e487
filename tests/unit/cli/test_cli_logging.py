"""Unit tests for CLI logging features.

Tests for --log-file, --trace flags and logging configuration.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest

from pkgprovides.logging_utils import configure_logging, resolve_log_level


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.NOTSET)


@pytest.mark.unit
@pytest.mark.cli
class TestLoggingConfiguration:
    """Test logging configuration functions."""

    @pytest.mark.parametrize(
        "value,expected",
        [(logging.INFO, logging.INFO), ("debug", logging.DEBUG), ("ERROR", logging.ERROR), ("bogus", logging.WARNING)],
    )
    def test_resolve_log_level(self, value, expected):
        assert resolve_log_level(value) == expected

    def test_configure_logging_basic(self):
        """Test basic logging configuration."""
        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = MagicMock()
            mock_get_logger.return_value = mock_logger

            configure_logging(logging.INFO)

            mock_logger.setLevel.assert_any_call(logging.INFO)
            assert mock_logger.addHandler.call_count == 1

    def test_configure_logging_with_file(self, tmp_path):
        """Test logging configuration with file output."""
        log_file = tmp_path / "provides.log"

        with patch("logging.getLogger") as mock_get_logger:
            mock_logger = MagicMock()
            mock_get_logger.return_value = mock_logger

            configure_logging(logging.DEBUG, log_file=str(log_file))

            # Should add both console and file handlers
            assert mock_logger.addHandler.call_count == 2

    def test_configure_logging_trace_mode(self):
        """Test trace mode uses detailed format."""
        with patch("logging.getLogger") as mock_get_logger, patch("logging.Formatter") as mock_formatter:
            mock_get_logger.return_value = MagicMock()

            configure_logging(logging.DEBUG, trace_mode=True)

            format_str = mock_formatter.call_args_list[0][0][0]
            assert "asctime" in format_str
            assert "%(name)s" in format_str

    def test_log_file_receives_messages(self, tmp_path, restore_root_logger):
        log_file = tmp_path / "provides.log"

        configure_logging("INFO", log_file=str(log_file))
        logging.getLogger("pkgprovides.test").info("scanning database")
        for handler in restore_root_logger.handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "INFO: scanning database" in content

    def test_unwritable_log_file(self, tmp_path, restore_root_logger):
        configure_logging("INFO", log_file=str(tmp_path / "missing-dir" / "provides.log"))

        assert len(restore_root_logger.handlers) == 1

    def test_http_loggers_quiet_unless_tracing(self, restore_root_logger):
        configure_logging(logging.DEBUG)
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging(logging.DEBUG, trace_mode=True)
        assert logging.getLogger("httpx").level == logging.DEBUG
