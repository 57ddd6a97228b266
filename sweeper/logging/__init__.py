"""Logging helpers for sweeper."""

from sweeper.logging.formatters import ResourceFormatter, configure_logging

__all__ = ["ResourceFormatter", "configure_logging"]
