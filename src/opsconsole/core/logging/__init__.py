"""Logging module with structured logging and request tracking."""

from opsconsole.core.logging.config import configure_logging
from opsconsole.core.logging.middleware import RequestLoggingMiddleware


__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
]
