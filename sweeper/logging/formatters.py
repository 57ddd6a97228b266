"""Logging formatters for resource-scoped records."""

import logging
import sys


class ResourceFormatter(logging.Formatter):
    """Logging formatter that prepends the resource id from the extra parameter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with resource prefix if present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message with optional resource prefix
        """
        msg = super().format(record)
        resource_id = getattr(record, "resource_id", None)

        if resource_id:
            return f"[{resource_id}] {msg}"

        return msg


def configure_logging(level: int | str = logging.INFO) -> logging.Handler:
    """Attach a stderr handler with ResourceFormatter to the sweeper logger.

    Calling it again replaces the handler installed by the previous call.

    Parameters
    ----------
    level : int | str
        Level for the sweeper logger

    Returns
    -------
    logging.Handler
        The installed handler
    """
    root = logging.getLogger("sweeper")

    for handler in list(root.handlers):
        if getattr(handler, "_sweeper_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ResourceFormatter("%(levelname)s %(name)s: %(message)s"))
    handler._sweeper_handler = True
    root.addHandler(handler)
    root.setLevel(level)
    return handler
