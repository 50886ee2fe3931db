"""Tests for logging helpers."""

import logging
import sys
from unittest.mock import patch

import structlog

from smtp_verifier.core.logging import configure_logging, sanitize_for_log


class TestSanitizeForLog:
    """Tests for sanitize_for_log."""

    def test_empty(self) -> None:
        assert sanitize_for_log("") == ""

    def test_multiline_reply_collapsed(self) -> None:
        assert sanitize_for_log("535-5.7.8 Username\r\n535 5.7.8 rejected") == (
            "535-5.7.8 Username 535 5.7.8 rejected"
        )

    def test_control_and_ansi_removed(self) -> None:
        assert sanitize_for_log("\x1b[31mred\x1b[0m\x00\x07") == "red"

    def test_truncated(self) -> None:
        assert sanitize_for_log("x" * 500, max_length=10) == "x" * 10



class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_renderer_by_default(self) -> None:
        with patch("smtp_verifier.core.logging.structlog.configure") as mock_configure:
            configure_logging()

        processors = mock_configure.call_args.kwargs["processors"]
        assert type(processors[-1]).__name__ == "ConsoleRenderer"

    def test_json_renderer(self) -> None:
        with patch("smtp_verifier.core.logging.structlog.configure") as mock_configure:
            configure_logging(json_format=True)

        processors = mock_configure.call_args.kwargs["processors"]
        assert type(processors[-1]).__name__ == "JSONRenderer"

    def test_json_tracebacks_are_structured(self) -> None:
        with patch("smtp_verifier.core.logging.structlog.configure") as mock_configure:
            configure_logging(json_format=True)

        processors = mock_configure.call_args.kwargs["processors"]
        assert structlog.processors.dict_tracebacks in processors

    def test_logs_written_to_stderr(self) -> None:
        """Test that log lines never land on stdout next to command output."""
        with (
            patch("smtp_verifier.core.logging.structlog.configure"),
            patch("smtp_verifier.core.logging.structlog.PrintLoggerFactory") as mock_factory,
        ):
            configure_logging()

        mock_factory.assert_called_once_with(file=sys.stderr)

    def test_debug_level(self) -> None:
        with (
            patch("smtp_verifier.core.logging.structlog.configure"),
            patch(
                "smtp_verifier.core.logging.structlog.make_filtering_bound_logger"
            ) as mock_wrapper,
        ):
            configure_logging(debug=True)

        mock_wrapper.assert_called_once_with(logging.DEBUG)
