"""Logging configuration for smtp-verifier.

This module provides structlog configuration and utility functions
for keeping server replies and secrets out of log output.
"""

import logging
import re
import sys
from typing import Any

import structlog


def sanitize_for_log(text: str, max_length: int = 200) -> str:
    """Remove control characters and limit length for safe logging.

    SMTP replies are multi-line and may carry arbitrary bytes from the
    remote server.

    Args:
        text: The text to sanitize.
        max_length: Maximum length of returned string.

    Returns:
        Sanitized text safe for logging.
    """
    if not text:
        return ""
    # ANSI codes first, their ESC byte is a control char
    text = re.sub(r"\x1b\[[0-9;]*m", "", text)
    text = re.sub(r"[\r\n\t]+", " ", text)
    text = re.sub(r"[\x00-\x1f\x7f]", "", text)
    return text.strip()[:max_length]


def configure_logging(json_format: bool = False, debug: bool = False) -> None:
    """Configure structlog to write to stderr.

    Command output goes to stdout, so logs never mix with what the CLI
    prints for scripts to parse.

    Args:
        json_format: If True, emit one JSON object per event with tracebacks
            as structured data (for CI and log shipping).
        debug: If True, enable DEBUG level logging.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_format:
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exc_info itself
        processors += [
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
