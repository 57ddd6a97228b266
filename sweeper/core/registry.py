"""Registry for managing resource lifecycle with dependency validation."""

from __future__ import annotations

import itertools
import logging
from collections import OrderedDict
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from sweeper.constants import DEFAULT_CATEGORY, ResourceCategory, ResourcePriority
from sweeper.core.config import ManagerConfig
from sweeper.core.exceptions import (
    CapacityExceededError,
    DuplicateResourceError,
    LiveDependentsError,
    UnknownDependencyError,
)
from sweeper.core.models import CleanupCallback, ResourceDefinition, now_ms

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Tracks active resource definitions keyed by id.

    Owns id uniqueness, capacity and dependency validation. Cleaned
    definitions leave the active mapping; their ids stay in a bounded
    history so that dependents can still see them as cleaned.

    Parameters
    ----------
    config : ManagerConfig
        Capacity and category defaults
    clock : Callable[[], float]
        Returns the current time in epoch milliseconds
    """

    def __init__(self, config: ManagerConfig, clock: Callable[[], float] = now_ms) -> None:
        self.config = config
        self._clock = clock
        self._resources: dict[str, ResourceDefinition] = {}
        self._cleaned_ids: OrderedDict[str, None] = OrderedDict()
        self._sequence = itertools.count()
        self._cleaned_count = 0
        self._total_registered = 0

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
        """Validate and store a new resource definition.

        Parameters
        ----------
        resource_id : str
            Unique identifier among active registrations
        cleanup : CleanupCallback
            Zero-argument teardown, plain or returning an awaitable
        category : ResourceCategory | None
            Category; defaults to ``event``
        priority : ResourcePriority | None
            Priority; defaults from category
        description : str | None
            Human-readable description
        tags : Iterable[str] | None
            Tags used by cleanup filters
        timeout_ms : float | None
            Cleanup timeout; defaults from category, then the manager default
        dependencies : Iterable[str] | None
            Active ids that must be cleaned first
        metadata : dict[str, Any] | None
            Opaque attachment, copied

        Returns
        -------
        ResourceDefinition
            The stored definition

        Raises
        ------
        TypeError
            If cleanup is not callable
        ValueError
            If timeout_ms is given and is not a positive number
        DuplicateResourceError
            If the id is already active
        CapacityExceededError
            If the registry is full
        UnknownDependencyError
            If a dependency is not active
        """
        if not callable(cleanup):
            raise TypeError(f"Cleanup for resource '{resource_id}' must be callable")

        if timeout_ms is not None and (
            isinstance(timeout_ms, bool)
            or not isinstance(timeout_ms, (int, float))
            or timeout_ms <= 0
        ):
            raise ValueError(
                f"timeout_ms for resource '{resource_id}' must be a positive number, "
                f"got {timeout_ms!r}"
            )

        if resource_id in self._resources:
            raise DuplicateResourceError(resource_id)

        if len(self._resources) >= self.config.max_resources:
            raise CapacityExceededError(self.config.max_resources)

        deps = tuple(dependencies or ())
        for dep_id in deps:
            if dep_id not in self._resources:
                raise UnknownDependencyError(resource_id, dep_id)

        category = ResourceCategory(category) if category is not None else DEFAULT_CATEGORY
        definition = ResourceDefinition(
            id=resource_id,
            cleanup=cleanup,
            category=category,
            priority=(
                ResourcePriority(priority)
                if priority is not None
                else self.config.priority_for(category)
            ),
            timeout_ms=timeout_ms if timeout_ms is not None else self.config.timeout_for(category),
            registered_at=self._clock(),
            sequence=next(self._sequence),
            description=description,
            tags=frozenset(tags or ()),
            dependencies=deps,
            metadata=dict(metadata or {}),
        )

        self._resources[resource_id] = definition
        self._total_registered += 1
        logger.debug(
            "Registered resource: %s (%s)",
            resource_id,
            category.value,
            extra={"resource_id": resource_id},
        )
        return definition

    def unregister(self, resource_id: str) -> ResourceDefinition | None:
        """Remove an active definition without cleaning it.

        Parameters
        ----------
        resource_id : str
            Identifier to remove

        Returns
        -------
        ResourceDefinition | None
            Removed definition, or None if the id was not active

        Raises
        ------
        LiveDependentsError
            If other active definitions depend on it
        """
        definition = self._resources.get(resource_id)
        if definition is None:
            return None

        dependents = self.dependents_of(resource_id)
        if dependents:
            raise LiveDependentsError(resource_id, dependents)

        del self._resources[resource_id]
        logger.debug("Unregistered resource: %s", resource_id, extra={"resource_id": resource_id})
        return definition

    def mark_cleaned(self, definition: ResourceDefinition) -> None:
        """Record a successful cleanup and drop the definition.

        Parameters
        ----------
        definition : ResourceDefinition
            Definition whose cleanup completed
        """
        definition.mark_cleaned()
        if self._resources.get(definition.id) is definition:
            del self._resources[definition.id]

        self._cleaned_ids.pop(definition.id, None)
        self._cleaned_ids[definition.id] = None
        while len(self._cleaned_ids) > self.config.cleaned_history_limit:
            self._cleaned_ids.popitem(last=False)

        self._cleaned_count += 1

    def is_active(self, definition: ResourceDefinition) -> bool:
        """Whether this exact definition is still registered and uncleaned."""
        return not definition.cleaned and self._resources.get(definition.id) is definition

    def is_dependency_satisfied(self, dependency_id: str) -> bool:
        """Resolve whether a dependency has reached the cleaned state.

        An id that is neither active nor remembered as cleaned is treated as
        not cleaned.

        Parameters
        ----------
        dependency_id : str
            Dependency to resolve

        Returns
        -------
        bool
            True only if the dependency is known to be cleaned
        """
        definition = self._resources.get(dependency_id)
        if definition is not None:
            return definition.cleaned
        return dependency_id in self._cleaned_ids

    def dependents_of(self, resource_id: str) -> list[str]:
        """List active ids that declare a dependency on resource_id."""
        return [
            definition.id
            for definition in self._resources.values()
            if resource_id in definition.dependencies
        ]

    def get(self, resource_id: str) -> ResourceDefinition | None:
        return self._resources.get(resource_id)

    def values(self) -> list[ResourceDefinition]:
        """Snapshot of active definitions in registration order."""
        return list(self._resources.values())

    def clear(self) -> None:
        """Drop every active definition without running its cleanup."""
        self._resources.clear()

    @property
    def cleaned_count(self) -> int:
        return self._cleaned_count

    @property
    def total_registered(self) -> int:
        return self._total_registered

    def __contains__(self, resource_id: object) -> bool:
        return resource_id in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[ResourceDefinition]:
        return iter(self.values())
