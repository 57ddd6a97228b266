"""Resource manager facade tying registry, scheduling and execution together."""

from __future__ import annotations

import asyncio
import errno
import logging
import os
import time
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from sweeper.constants import (
    EXIT_CLEANUP_TIMEOUT_MS,
    FILE_DESCRIPTOR_TAG,
    ResourceCategory,
    ResourcePriority,
)
from sweeper.core.config import ManagerConfig
from sweeper.core.events import (
    CleanupCompleted,
    CleanupStarted,
    EventBus,
    EventHandler,
    EventPayload,
    LeakDetected,
    ResourceCleaned,
    ResourceCleanupFailed,
    ResourceEvent,
    ResourceRegistered,
    ResourceUnregistered,
)
from sweeper.core.exceptions import CleanupDeferredError
from sweeper.core.executor import CleanupExecutor
from sweeper.core.leaks import LeakDetector
from sweeper.core.models import (
    CleanupCallback,
    CleanupOptions,
    CleanupResult,
    ResourceDefinition,
    ResourceLeak,
    ResourceStats,
    now_ms,
)
from sweeper.core.registry import ResourceRegistry
from sweeper.core.scheduler import order_candidates, plan_parallel_groups, select_candidates
from sweeper.core.signals import ProcessExitHooks

logger = logging.getLogger(__name__)


class ResourceManager:
    """Tracks resources and tears them down in a bounded, ordered pass.

    Only one cleanup pass runs at a time per manager. A call to ``cleanup``
    made while a pass is running awaits that pass and receives the same
    result object; its own options are ignored.

    Parameters
    ----------
    config : ManagerConfig | None
        Manager settings, defaults if None
    clock : Callable[[], float] | None
        Returns the current time in epoch milliseconds; used for
        registration, error and event timestamps and leak ages
    """

    def __init__(
        self,
        config: ManagerConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.config = config or ManagerConfig()
        self.config.validate()
        self._clock = clock or now_ms
        self._registry = ResourceRegistry(self.config, self._clock)
        self._events = EventBus(history_limit=self.config.event_history_limit)
        self._executor = CleanupExecutor(self._clock)
        self._leak_detector = LeakDetector(self.config.leak_detection_age_ms, self._clock)
        self._inflight: asyncio.Future[CleanupResult] | None = None
        self._exit_hooks: ProcessExitHooks | None = None

        if self.config.auto_register_process_handlers:
            self.register_process_handlers()

    def register(
        self,
        resource_id: str,
        cleanup: CleanupCallback,
        category: ResourceCategory | None = None,
        priority: ResourcePriority | None = None,
        description: str | None = None,
        tags: Iterable[str] | None = None,
        timeout_ms: float | None = None,
        dependencies: Iterable[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ResourceDefinition:
        """Register a resource for cleanup.

        See ``ResourceRegistry.register`` for parameters and raised errors.

        Returns
        -------
        ResourceDefinition
            The stored definition
        """
        definition = self._registry.register(
            resource_id,
            cleanup,
            category=category,
            priority=priority,
            description=description,
            tags=tags,
            timeout_ms=timeout_ms,
            dependencies=dependencies,
            metadata=metadata,
        )
        self._events.emit(
            ResourceRegistered(
                resource_id=definition.id,
                category=definition.category,
                description=definition.description,
                tags=definition.tags,
                timestamp=self._clock(),
            )
        )
        return definition

    def register_batch(self, entries: Iterable[Mapping[str, Any]]) -> list[ResourceDefinition]:
        """Register several resources in order.

        Entries are applied one by one; a failing entry raises and leaves the
        earlier registrations in place.

        Parameters
        ----------
        entries : Iterable[Mapping[str, Any]]
            Mappings with ``id`` and ``cleanup`` keys plus any keyword
            accepted by ``register``

        Returns
        -------
        list[ResourceDefinition]
            Stored definitions
        """
        registered = []
        for entry in entries:
            options = dict(entry)
            resource_id = options.pop("id")
            cleanup = options.pop("cleanup")
            registered.append(self.register(resource_id, cleanup, **options))
        return registered

    def register_file_descriptor(
        self, resource_id: str, fd: int, path: str | None = None
    ) -> ResourceDefinition:
        """Register an OS file descriptor to be closed at cleanup.

        A descriptor that is already closed is ignored at cleanup time.

        Parameters
        ----------
        resource_id : str
            Unique identifier
        fd : int
            Raw file descriptor
        path : str | None
            Path the descriptor refers to, for diagnostics
        """

        def close_descriptor() -> None:
            try:
                os.close(fd)
            except OSError as e:
                if e.errno != errno.EBADF:
                    raise
                logger.debug(
                    "File descriptor %s already closed",
                    fd,
                    extra={"resource_id": resource_id},
                )

        description = f"File descriptor {fd} for {path}" if path else f"File descriptor {fd}"
        return self.register(
            resource_id,
            close_descriptor,
            category=ResourceCategory.FILE,
            priority=ResourcePriority.HIGH,
            description=description,
            tags=[FILE_DESCRIPTOR_TAG],
            metadata={"fd": fd, "path": path},
        )

    def unregister(self, resource_id: str) -> bool:
        """Remove a resource without running its cleanup.

        Returns
        -------
        bool
            False if the id was not registered

        Raises
        ------
        LiveDependentsError
            If other registered resources depend on it
        """
        definition = self._registry.unregister(resource_id)
        if definition is None:
            return False

        self._events.emit(
            ResourceUnregistered(
                resource_id=definition.id,
                category=definition.category,
                timestamp=self._clock(),
            )
        )
        return True

    async def cleanup(self, options: CleanupOptions | None = None) -> CleanupResult:
        """Run a cleanup pass, or join the one already running.

        Per-resource failures never raise; they are collected in the result.

        Parameters
        ----------
        options : CleanupOptions | None
            Filters and execution options for a new pass

        Returns
        -------
        CleanupResult
            Aggregate outcome, shared by every caller of the same pass
        """
        inflight = self._inflight
        if inflight is not None and not inflight.done():
            if inflight.get_loop() is asyncio.get_running_loop():
                logger.debug("Cleanup already in progress, joining it")
                return await asyncio.shield(inflight)
            logger.warning("Discarding cleanup pass left pending on a closed event loop")

        task = asyncio.ensure_future(self._run_pass(options or CleanupOptions()))
        self._inflight = task
        task.add_done_callback(self._clear_inflight)
        return await asyncio.shield(task)

    async def cleanup_by_category(self, category: ResourceCategory) -> CleanupResult:
        return await self.cleanup(CleanupOptions(categories=[category]))

    async def cleanup_batch(self, ids: Iterable[str]) -> CleanupResult:
        return await self.cleanup(CleanupOptions(ids=list(ids)))

    @property
    def is_cleaning(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    @property
    def pending_cleanups(self) -> int:
        """Timed-out callbacks still running in the background."""
        return self._executor.pending_count

    def emergency_cleanup(self) -> CleanupResult:
        """Run a bounded cleanup pass from synchronous code.

        Used by process-exit hooks. Runs on a fresh event loop with
        ``continue_on_error`` and a short per-resource timeout.

        Returns
        -------
        CleanupResult
            Pass outcome

        Raises
        ------
        CleanupDeferredError
            If an event loop is already running in this thread
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.info("Process exit signal received - cleaning up resources")
            return asyncio.run(
                self.cleanup(
                    CleanupOptions(timeout_ms=EXIT_CLEANUP_TIMEOUT_MS, continue_on_error=True)
                )
            )

        logger.warning("Event loop is running; deferring emergency cleanup")
        raise CleanupDeferredError("an event loop is running in this thread")

    def register_process_handlers(self) -> None:
        """Attach process-exit hooks that call emergency_cleanup."""
        if self._exit_hooks is None:
            self._exit_hooks = ProcessExitHooks(self.emergency_cleanup)
        self._exit_hooks.install()

    def unregister_process_handlers(self) -> None:
        """Detach process-exit hooks installed by register_process_handlers."""
        if self._exit_hooks is not None:
            self._exit_hooks.uninstall()

    @property
    def process_handlers_registered(self) -> bool:
        return self._exit_hooks is not None and self._exit_hooks.installed

    def get_stats(self) -> ResourceStats:
        """Summarize live registrations without emitting events."""
        now = self._clock()
        definitions = self._registry.values()
        by_category = {category: 0 for category in ResourceCategory}
        by_priority = {priority: 0 for priority in ResourcePriority}
        ages = []

        for definition in definitions:
            by_category[definition.category] += 1
            by_priority[definition.priority] += 1
            ages.append(now - definition.registered_at)

        return ResourceStats(
            total=len(definitions),
            total_registered=self._registry.total_registered,
            by_category=by_category,
            by_priority=by_priority,
            cleaned=self._registry.cleaned_count,
            average_age_ms=sum(ages) / len(ages) if ages else 0.0,
            oldest_age_ms=max(ages, default=0.0),
            potential_leaks=len(self._leak_detector.scan(definitions)),
        )

    def detect_leaks(self) -> list[ResourceLeak]:
        """Report resources older than the leak threshold.

        Emits one ``leak:detected`` event per finding; never mutates state.
        """
        leaks = self._leak_detector.scan(self._registry.values())

        for leak in leaks:
            logger.debug(
                "Leak detected: %s (%s) age=%.0fms",
                leak.resource_id,
                leak.category.value,
                leak.age_ms,
                extra={"resource_id": leak.resource_id},
            )
            self._events.emit(
                LeakDetected(
                    resource_id=leak.resource_id,
                    category=leak.category,
                    age_ms=leak.age_ms,
                    potential_leak=leak.potential_leak,
                    description=leak.description,
                    timestamp=self._clock(),
                )
            )

        return leaks

    def on(self, event: ResourceEvent, handler: EventHandler) -> None:
        self._events.on(event, handler)

    def off(self, event: ResourceEvent, handler: EventHandler) -> bool:
        return self._events.off(event, handler)

    def remove_all_listeners(self, event: ResourceEvent | None = None) -> None:
        self._events.remove_all_listeners(event)

    def recent_events(self) -> list[EventPayload]:
        return self._events.recent_events()

    def get_resource_count(self) -> int:
        return len(self._registry)

    def get_resources_by_category(self) -> dict[ResourceCategory, int]:
        return self.get_stats().by_category

    def has_resource(self, resource_id: str) -> bool:
        return resource_id in self._registry

    def get_resource(self, resource_id: str) -> ResourceDefinition | None:
        return self._registry.get(resource_id)

    def clear(self) -> None:
        """Forget every registered resource without running cleanups."""
        self._registry.clear()
        logger.debug("All resources cleared")

    def _clear_inflight(self, task: asyncio.Future[CleanupResult]) -> None:
        if self._inflight is task:
            self._inflight = None

    async def _run_pass(self, options: CleanupOptions) -> CleanupResult:
        start = time.monotonic()
        self._events.emit(CleanupStarted(options=options, timestamp=self._clock()))

        candidates = order_candidates(select_candidates(self._registry.values(), options))
        result = CleanupResult(resources_processed=len(candidates))

        if options.parallel:
            groups = plan_parallel_groups(candidates)
        else:
            groups = [[definition] for definition in candidates]

        for group in groups:
            ready = [d for d in group if self._is_ready(d, options, result)]

            if len(ready) > 1:
                outcomes = await asyncio.gather(
                    *(self._clean_one(d, options, result) for d in ready)
                )
            else:
                outcomes = [await self._clean_one(d, options, result) for d in ready]

            if not all(outcomes) and not options.continue_on_error:
                logger.info("Stopping cleanup after failure (continue_on_error is off)")
                break

        result.duration_ms = (time.monotonic() - start) * 1000
        result.success = not result.errors or options.continue_on_error

        if result.errors:
            logger.info("Cleanup completed with %s errors", len(result.errors))
        else:
            logger.debug("Cleanup completed successfully")

        self._events.emit(CleanupCompleted(result=result, timestamp=self._clock()))
        return result

    def _is_ready(
        self, definition: ResourceDefinition, options: CleanupOptions, result: CleanupResult
    ) -> bool:
        if not self._registry.is_active(definition):
            return False

        if options.force:
            return True

        if all(self._registry.is_dependency_satisfied(dep) for dep in definition.dependencies):
            return True

        logger.debug(
            "Skipping %s - dependencies not cleaned",
            definition.id,
            extra={"resource_id": definition.id},
        )
        result.skipped.append(definition.id)
        return False

    async def _clean_one(
        self, definition: ResourceDefinition, options: CleanupOptions, result: CleanupResult
    ) -> bool:
        timeout_ms = options.timeout_ms if options.timeout_ms is not None else definition.timeout_ms
        summary = result.summary[definition.category]
        start = time.monotonic()

        try:
            await self._executor.run(definition, timeout_ms)
        except Exception as e:
            summary.duration_ms += (time.monotonic() - start) * 1000
            error = self._executor.capture(definition, e)
            result.errors.append(error)
            summary.failed += 1
            logger.warning(
                "Cleanup failed for %s '%s': %s",
                definition.category.value,
                definition.id,
                e,
                extra={"resource_id": definition.id},
            )
            self._events.emit(
                ResourceCleanupFailed(
                    resource_id=definition.id,
                    category=definition.category,
                    error=e,
                    timeout=error.timeout,
                    timestamp=error.timestamp,
                )
            )
            return False

        elapsed_ms = (time.monotonic() - start) * 1000
        summary.duration_ms += elapsed_ms
        self._registry.mark_cleaned(definition)
        result.resources_cleaned += 1
        summary.success += 1
        logger.debug(
            "Cleaned up %s: %s",
            definition.category.value,
            definition.id,
            extra={"resource_id": definition.id},
        )
        self._events.emit(
            ResourceCleaned(
                resource_id=definition.id,
                category=definition.category,
                duration_ms=elapsed_ms,
                timestamp=self._clock(),
            )
        )
        return True
