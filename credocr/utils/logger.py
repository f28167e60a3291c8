"""Centralized logging setup for the credential document pipeline.

Provides one logging configuration with consistent formatting across all
modules, and keeps chatty HTTP client loggers quiet.
"""

import logging
import sys

# httpx logs full request URLs at INFO, and Gemini keys travel in the query string.
_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "google.auth", "urllib3")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a named logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)


def preview(text: str | None, limit: int = 100) -> str:
    """Shorten a payload for log output.

    Args:
        text: Text to shorten.
        limit: Maximum number of characters kept.

    Returns:
        The text, cut to ``limit`` characters with an ellipsis if longer.
    """
    if not text:
        return ""
    return text if len(text) <= limit else f"{text[:limit]}..."
