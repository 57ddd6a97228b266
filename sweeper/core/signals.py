"""Process-exit hooks that trigger a bounded emergency cleanup."""

from __future__ import annotations

import atexit
import logging
import signal
import sys
import threading
import types
from collections.abc import Callable
from typing import Any

from sweeper.constants import ExitCode
from sweeper.core.exceptions import CleanupDeferredError

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def exit_code_for(signum: int) -> int:
    """Map a termination signal to the conventional shell exit code."""
    if signum == signal.SIGINT:
        return ExitCode.SIGINT.value
    if signum == signal.SIGTERM:
        return ExitCode.SIGTERM.value
    return ExitCode.OTHER.value


class ProcessExitHooks:
    """Attach a cleanup callback to interpreter exit and termination signals.

    The callback runs at most once per installation, whichever of atexit,
    SIGINT or SIGTERM fires first. A callback that raises
    ``CleanupDeferredError`` has not run, so a later trigger retries it.
    Signal handlers are only installed from the main thread; elsewhere only
    the atexit hook is registered.

    Parameters
    ----------
    callback : Callable[[], Any]
        Cleanup invoked on exit
    """

    def __init__(self, callback: Callable[[], Any]) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._installed = False
        self._fired = False
        self._previous_handlers: dict[int, Any] = {}

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> bool:
        """Register the atexit hook and signal handlers.

        Returns
        -------
        bool
            False if the hooks were already installed
        """
        if self._installed:
            return False

        atexit.register(self._handle_exit)

        if threading.current_thread() is threading.main_thread():
            for signum in HANDLED_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        else:
            logger.debug("Not in main thread; installing atexit hook only")

        self._installed = True
        self._fired = False
        logger.debug("Process exit handlers registered")
        return True

    def uninstall(self) -> None:
        """Restore previous signal handlers and drop the atexit hook."""
        if not self._installed:
            return

        atexit.unregister(self._handle_exit)

        for signum, previous in self._previous_handlers.items():
            if previous is None:
                continue
            try:
                signal.signal(signum, previous)
            except ValueError as e:
                logger.warning("Could not restore handler for signal %s: %s", signum, e)

        self._previous_handlers.clear()
        self._installed = False
        logger.debug("Process exit handlers unregistered")

    def _run_once(self) -> None:
        # Non-blocking: a signal may arrive while the main thread holds the lock.
        if not self._lock.acquire(blocking=False):
            logger.debug("Emergency cleanup already running")
            return

        try:
            if self._fired:
                return

            try:
                self._callback()
            except CleanupDeferredError as e:
                logger.warning("Emergency cleanup deferred: %s", e)
                return
            except Exception:
                logger.exception("Error during emergency cleanup")

            self._fired = True
        finally:
            self._lock.release()

    def _handle_exit(self) -> None:
        logger.debug("Interpreter exit - cleaning up resources")
        self._run_once()

    def _handle_signal(self, signum: int, frame: types.FrameType | None) -> None:
        logger.info("Received signal %s - cleaning up resources", signum)
        self._run_once()

        previous = self._previous_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_IGN:
            return
        else:
            sys.exit(exit_code_for(signum))
