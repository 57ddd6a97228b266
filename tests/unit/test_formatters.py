"""Unit tests for resource-aware logging."""

import logging

from sweeper.logging import ResourceFormatter, configure_logging


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="sweeper.core.manager",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Cleanup failed: %s",
        args=("boom",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestResourceFormatter:
    """Test resource prefixing."""

    def test_prefix_with_resource_id(self) -> None:
        """Test records carrying a resource id are prefixed."""
        formatter = ResourceFormatter("%(message)s")

        assert formatter.format(make_record(resource_id="db")) == "[db] Cleanup failed: boom"

    def test_no_prefix_without_resource_id(self) -> None:
        """Test plain records are left untouched."""
        formatter = ResourceFormatter("%(message)s")

        assert formatter.format(make_record()) == "Cleanup failed: boom"


class TestConfigureLogging:
    """Test handler installation."""

    def test_repeat_calls_replace_handler(self) -> None:
        """Test configuring twice leaves a single sweeper handler."""
        sweeper_logger = logging.getLogger("sweeper")
        original_level = sweeper_logger.level

        try:
            first = configure_logging(logging.DEBUG)
            second = configure_logging("WARNING")

            installed = [h for h in sweeper_logger.handlers if getattr(h, "_sweeper_handler", False)]
            assert installed == [second]
            assert first not in sweeper_logger.handlers
            assert sweeper_logger.level == logging.WARNING
            assert isinstance(second.formatter, ResourceFormatter)
        finally:
            for handler in list(sweeper_logger.handlers):
                if getattr(handler, "_sweeper_handler", False):
                    sweeper_logger.removeHandler(handler)
            sweeper_logger.setLevel(original_level)
