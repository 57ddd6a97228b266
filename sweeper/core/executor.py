"""Timeout-raced invocation of resource cleanup callbacks."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable

from sweeper.core.exceptions import ResourceCleanupError, ResourceCleanupTimeoutError
from sweeper.core.models import CleanupCallback, CleanupError, ResourceDefinition, now_ms

logger = logging.getLogger(__name__)


async def invoke_cleanup(cleanup: CleanupCallback) -> None:
    """Call a cleanup callback and await its result if it is awaitable.

    Parameters
    ----------
    cleanup : CleanupCallback
        Plain function, coroutine function, or callable returning an awaitable
    """
    result = cleanup()
    if inspect.isawaitable(result):
        await result


class CleanupExecutor:
    """Runs cleanup callbacks under a timeout race.

    A timed-out callback is not cancelled: the executor stops waiting and
    reports a timeout while the callback keeps running in the background.
    Such callbacks are tracked until they finish so their outcome is logged
    rather than lost.

    Parameters
    ----------
    clock : Callable[[], float]
        Returns the current time in epoch milliseconds, used for error
        timestamps

    Notes
    -----
    Plain (non-awaitable) callbacks run to completion on the event loop once
    started, so the timeout can only interrupt the wait on callbacks that
    yield control.
    """

    def __init__(self, clock: Callable[[], float] = now_ms) -> None:
        self._clock = clock
        self._abandoned: set[asyncio.Task[None]] = set()

    async def run(self, definition: ResourceDefinition, timeout_ms: float) -> None:
        """Invoke a definition's cleanup and wait at most timeout_ms.

        Parameters
        ----------
        definition : ResourceDefinition
            Resource to clean
        timeout_ms : float
            Time to wait before reporting a timeout

        Raises
        ------
        ResourceCleanupTimeoutError
            If the callback did not finish in time
        ResourceCleanupError
            If the callback raised or was cancelled; a raised exception is
            chained as ``__cause__``
        """
        task = asyncio.ensure_future(invoke_cleanup(definition.cleanup))
        done, _ = await asyncio.wait({task}, timeout=timeout_ms / 1000)

        if not done:
            self._abandon(definition.id, task)
            raise ResourceCleanupTimeoutError(definition.id, timeout_ms)

        if task.cancelled():
            raise ResourceCleanupError(
                definition.id, f"Cleanup cancelled for resource: {definition.id}"
            )

        exc = task.exception()
        if exc is not None:
            raise ResourceCleanupError(definition.id, str(exc) or type(exc).__name__) from exc

    def capture(self, definition: ResourceDefinition, exc: BaseException) -> CleanupError:
        """Convert a cleanup failure into a structured error record.

        Parameters
        ----------
        definition : ResourceDefinition
            Resource whose cleanup failed
        exc : BaseException
            Failure raised by run

        Returns
        -------
        CleanupError
            Record with the timeout flag derived from the exception type
        """
        return CleanupError(
            resource_id=definition.id,
            category=definition.category,
            error=exc,
            timeout=isinstance(exc, ResourceCleanupTimeoutError),
            timestamp=self._clock(),
        )

    @property
    def pending_count(self) -> int:
        """Number of timed-out callbacks that are still running."""
        return len(self._abandoned)

    def _abandon(self, resource_id: str, task: asyncio.Task[None]) -> None:
        self._abandoned.add(task)

        def _finished(finished: asyncio.Task[None]) -> None:
            self._abandoned.discard(finished)
            if finished.cancelled():
                logger.debug(
                    "Timed-out cleanup was cancelled",
                    extra={"resource_id": resource_id},
                )
                return
            exc = finished.exception()
            if exc is not None:
                logger.debug(
                    "Timed-out cleanup eventually failed: %s",
                    exc,
                    extra={"resource_id": resource_id},
                )
            else:
                logger.debug(
                    "Timed-out cleanup eventually completed",
                    extra={"resource_id": resource_id},
                )

        task.add_done_callback(_finished)
