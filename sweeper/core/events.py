"""Lifecycle event bus for resource manager observers."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Union

from sweeper.constants import DEFAULT_EVENT_HISTORY_LIMIT, ResourceCategory
from sweeper.core.models import now_ms

if TYPE_CHECKING:
    from sweeper.core.models import CleanupOptions, CleanupResult

logger = logging.getLogger(__name__)


class ResourceEvent(str, Enum):
    """Closed set of lifecycle notifications."""

    RESOURCE_REGISTERED = "resource:registered"
    RESOURCE_UNREGISTERED = "resource:unregistered"
    RESOURCE_CLEANED = "resource:cleaned"
    RESOURCE_CLEANUP_FAILED = "resource:cleanup:failed"
    CLEANUP_STARTED = "cleanup:started"
    CLEANUP_COMPLETED = "cleanup:completed"
    LEAK_DETECTED = "leak:detected"


@dataclass(frozen=True)
class ResourceRegistered:
    """A resource was added to the registry."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.RESOURCE_REGISTERED

    resource_id: str
    category: ResourceCategory
    description: str | None = None
    tags: frozenset[str] = frozenset()
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class ResourceUnregistered:
    """A resource was removed without being cleaned."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.RESOURCE_UNREGISTERED

    resource_id: str
    category: ResourceCategory
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class ResourceCleaned:
    """A resource's cleanup completed successfully."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.RESOURCE_CLEANED

    resource_id: str
    category: ResourceCategory
    duration_ms: float = 0.0
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class ResourceCleanupFailed:
    """A resource's cleanup raised or timed out."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.RESOURCE_CLEANUP_FAILED

    resource_id: str
    category: ResourceCategory
    error: BaseException
    timeout: bool = False
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class CleanupStarted:
    """A cleanup pass began."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.CLEANUP_STARTED

    options: CleanupOptions
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class CleanupCompleted:
    """A cleanup pass finished."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.CLEANUP_COMPLETED

    result: CleanupResult
    timestamp: float = field(default_factory=now_ms)


@dataclass(frozen=True)
class LeakDetected:
    """A resource stayed registered past the leak threshold."""

    kind: ClassVar[ResourceEvent] = ResourceEvent.LEAK_DETECTED

    resource_id: str
    category: ResourceCategory
    age_ms: float
    potential_leak: bool
    description: str | None = None
    timestamp: float = field(default_factory=now_ms)


EventPayload = Union[
    ResourceRegistered,
    ResourceUnregistered,
    ResourceCleaned,
    ResourceCleanupFailed,
    CleanupStarted,
    CleanupCompleted,
    LeakDetected,
]

EventHandler = Callable[[Any], None]


class EventBus:
    """Synchronous observer registry keyed by event kind.

    Handlers run in subscription order. A handler that raises is logged and
    skipped; it never interrupts other handlers or the caller of ``emit``.

    Parameters
    ----------
    history_limit : int
        Number of recent events retained for diagnostics
    """

    def __init__(self, history_limit: int = DEFAULT_EVENT_HISTORY_LIMIT) -> None:
        self._handlers: dict[ResourceEvent, list[EventHandler]] = {}
        self._history: deque[EventPayload] = deque(maxlen=history_limit)

    def on(self, event: ResourceEvent, handler: EventHandler) -> None:
        """Subscribe a handler to one event kind.

        Parameters
        ----------
        event : ResourceEvent
            Event kind
        handler : EventHandler
            Callable invoked with the event payload; subscribing the same
            handler twice has no effect
        """
        handlers = self._handlers.setdefault(ResourceEvent(event), [])
        if handler not in handlers:
            handlers.append(handler)

    def off(self, event: ResourceEvent, handler: EventHandler) -> bool:
        """Unsubscribe a handler.

        Returns
        -------
        bool
            True if the handler was subscribed
        """
        handlers = self._handlers.get(ResourceEvent(event))
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        return True

    def remove_all_listeners(self, event: ResourceEvent | None = None) -> None:
        """Drop handlers for one event kind, or for all kinds when event is None."""
        if event is None:
            self._handlers.clear()
        else:
            self._handlers.pop(ResourceEvent(event), None)

    def listener_count(self, event: ResourceEvent) -> int:
        return len(self._handlers.get(ResourceEvent(event), ()))

    def emit(self, payload: EventPayload) -> None:
        """Deliver a payload to the handlers of its kind.

        Parameters
        ----------
        payload : EventPayload
            Event to deliver; its ``kind`` selects the handlers
        """
        self._history.append(payload)

        for handler in list(self._handlers.get(payload.kind, ())):
            try:
                handler(payload)
            except Exception:
                logger.exception(
                    "Error in event listener %r for %s", handler, payload.kind.value
                )

    def recent_events(self) -> list[EventPayload]:
        """Return retained events, oldest first."""
        return list(self._history)
