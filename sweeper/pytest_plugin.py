"""pytest integration for sweeper.

Load with ``pytest_plugins = ["sweeper.pytest_plugin"]`` in a root conftest,
or with ``-p sweeper.pytest_plugin`` on the command line or in ``addopts``.

Provides the ``resource_manager`` fixture and, when enabled through ini
options, automatic cleanup of the default manager after each test and at
session end.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Generator

import pytest

from sweeper.core.manager import ResourceManager
from sweeper.core.models import CleanupOptions, CleanupResult, ResourceLeak
from sweeper.defaults import default_manager

logger = logging.getLogger(__name__)

CLEANUP_AFTER_EACH_INI = "sweeper_cleanup_after_each"
LEAK_DETECTION_INI = "sweeper_leak_detection"


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addini(
        CLEANUP_AFTER_EACH_INI,
        "Clean the default resource manager after every test",
        type="bool",
        default=False,
    )
    parser.addini(
        LEAK_DETECTION_INI,
        "Log resources left registered after cleanup",
        type="bool",
        default=True,
    )


def report_cleanup(result: CleanupResult, stage: str) -> None:
    """Log each error of a cleanup result as a warning.

    Parameters
    ----------
    result : CleanupResult
        Outcome to report
    stage : str
        Where the cleanup ran, used as a log prefix
    """
    for index, error in enumerate(result.errors, start=1):
        logger.warning(
            "Cleanup error in %s: %s. %s: %s",
            stage,
            index,
            error.resource_id,
            error.error,
            extra={"resource_id": error.resource_id},
        )


def report_leaks(leaks: list[ResourceLeak], stage: str, level: int = logging.WARNING) -> None:
    """Log leak findings at the given level."""
    for index, leak in enumerate(leaks, start=1):
        logger.log(
            level,
            "Resource leak after %s: %s. %s (%s) - age: %.0fms%s",
            stage,
            index,
            leak.resource_id,
            leak.category.value,
            leak.age_ms,
            f" - {leak.description}" if leak.description else "",
            extra={"resource_id": leak.resource_id},
        )


def run_cleanup(manager: ResourceManager, stage: str, detect_leaks: bool) -> CleanupResult:
    """Clean a manager from synchronous pytest code and report the outcome.

    Parameters
    ----------
    manager : ResourceManager
        Manager to clean
    stage : str
        Label used in log messages
    detect_leaks : bool
        Whether to log resources still registered afterwards

    Returns
    -------
    CleanupResult
        Outcome of the pass
    """
    result = asyncio.run(manager.cleanup(CleanupOptions(continue_on_error=True)))
    report_cleanup(result, stage)

    if detect_leaks:
        report_leaks(manager.detect_leaks(), stage)

    return result


@pytest.fixture
def resource_manager(request: pytest.FixtureRequest) -> Generator[ResourceManager, None, None]:
    """Provide a fresh ResourceManager cleaned after the test.

    Yields
    ------
    ResourceManager
        Manager scoped to the requesting test
    """
    manager = ResourceManager()

    yield manager

    run_cleanup(
        manager,
        stage=request.node.nodeid,
        detect_leaks=request.config.getini(LEAK_DETECTION_INI),
    )


@pytest.hookimpl(trylast=True)
def pytest_runtest_teardown(item: pytest.Item) -> None:
    if not item.config.getini(CLEANUP_AFTER_EACH_INI):
        return

    if not default_manager.is_initialized:
        return

    run_cleanup(
        default_manager.get(),
        stage=item.nodeid,
        detect_leaks=item.config.getini(LEAK_DETECTION_INI),
    )


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    if not default_manager.is_initialized:
        return

    manager = default_manager.get()
    if not manager.get_resource_count():
        return

    result = asyncio.run(manager.cleanup(CleanupOptions(continue_on_error=True)))
    report_cleanup(result, "session")

    if session.config.getini(LEAK_DETECTION_INI):
        remaining = manager.detect_leaks()
        report_leaks(remaining, "session", level=logging.ERROR)
