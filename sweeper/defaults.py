"""Process-wide default resource manager and convenience functions.

Collaborators that do not want to own a ResourceManager (container drivers,
cache layers, provider clients) register their handles here. The default
instance is created lazily and has an explicit init/reset lifecycle so test
suites can start from a clean manager.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from sweeper.constants import ResourceCategory, ResourcePriority
from sweeper.core.config import ManagerConfig
from sweeper.core.manager import ResourceManager
from sweeper.core.models import (
    CleanupCallback,
    CleanupOptions,
    CleanupResult,
    ResourceDefinition,
    ResourceLeak,
    ResourceStats,
)

logger = logging.getLogger(__name__)


class DefaultManagerHolder:
    """Owner of the process-wide default ResourceManager."""

    def __init__(self) -> None:
        self._instance: ResourceManager | None = None

    def init(self, config: ManagerConfig | None = None) -> ResourceManager:
        """Replace the default manager with a fresh one.

        Any previous instance is reset first; its registered resources are
        forgotten without being cleaned.

        Parameters
        ----------
        config : ManagerConfig | None
            Settings for the new manager

        Returns
        -------
        ResourceManager
            The new default manager
        """
        self.reset()
        self._instance = ResourceManager(config)
        logger.debug("Default resource manager initialized")
        return self._instance

    def get(self) -> ResourceManager:
        """Return the default manager, creating it with defaults if needed."""
        if self._instance is None:
            self._instance = ResourceManager()
        return self._instance

    def reset(self) -> None:
        """Detach process hooks and drop the default manager."""
        if self._instance is None:
            return

        self._instance.unregister_process_handlers()
        if self._instance.get_resource_count():
            logger.warning(
                "Resetting default resource manager with %s uncleaned resources",
                self._instance.get_resource_count(),
            )
        self._instance = None

    @property
    def is_initialized(self) -> bool:
        return self._instance is not None


default_manager = DefaultManagerHolder()


def get_default_manager() -> ResourceManager:
    return default_manager.get()


def register_resource(
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
    """Register a resource with the default manager."""
    return default_manager.get().register(
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


def register_file_descriptor(
    resource_id: str, fd: int, path: str | None = None
) -> ResourceDefinition:
    """Register a file descriptor with the default manager."""
    return default_manager.get().register_file_descriptor(resource_id, fd, path)


async def cleanup_all_resources(options: CleanupOptions | None = None) -> CleanupResult:
    """Run a cleanup pass on the default manager."""
    return await default_manager.get().cleanup(options)


def get_resource_stats() -> ResourceStats:
    return default_manager.get().get_stats()


def detect_resource_leaks() -> list[ResourceLeak]:
    return default_manager.get().detect_leaks()
