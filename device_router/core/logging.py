"""Secure structured logging for Device Router.

This module provides logging with session-token masking so that stored
profiles cannot be replayed from log output.

Features:
    - Session cookie and token masking
    - Redis URL password masking
    - JSON structured logging format
    - Configurable log levels and formats
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone

# Patterns to mask in logs
SENSITIVE_PATTERNS = [
    (
        re.compile(r"(session[_-]?token[\"']?\s*[:=]\s*[\"']?)[\w-]+", re.I),
        r"\1***MASKED***",
    ),
    (re.compile(r"(dr_session=)[^;\s]+", re.I), r"\1***MASKED***"),
    (re.compile(r"(rediss?://[^:/@\s]*:)[^@\s]+@", re.I), r"\1***MASKED***@"),
]


def mask_secrets(message: str) -> str:
    """Apply every sensitive-data pattern to a message."""
    for pattern, replacement in SENSITIVE_PATTERNS:
        message = pattern.sub(replacement, message)
    return message


class SecureFormatter(logging.Formatter):
    """Formatter that masks session tokens and credentials."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record and mask sensitive data.

        Args:
            record: The log record to format.

        Returns:
            Formatted log message with sensitive data masked.
        """
        return mask_secrets(super().format(record))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON with sensitive data masked.

        Args:
            record: The log record to format.

        Returns:
            JSON-formatted log message with sensitive data masked.
        """
        log_data: dict[str, str] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return mask_secrets(json.dumps(log_data))


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    mask_sensitive: bool = True,
) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR).
        json_format: Use JSON format for structured logging.
        mask_sensitive: Mask session tokens and credentials in logs.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    elif mask_sensitive:
        formatter = SecureFormatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
