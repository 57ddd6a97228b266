"""Data shapes describing tracked resources and cleanup outcomes."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Union

from sweeper.constants import ResourceCategory, ResourcePriority

CleanupCallback = Callable[[], Union[None, Awaitable[None]]]
"""Zero-argument teardown; may return an awaitable that completes the cleanup."""


def now_ms() -> float:
    """Return the current wall-clock time in milliseconds.

    Returns
    -------
    float
        Milliseconds since the epoch
    """
    return time.time() * 1000


@dataclass
class ResourceDefinition:
    """A registered resource and its cleanup metadata.

    Attributes
    ----------
    id : str
        Unique identifier among active registrations
    cleanup : CleanupCallback
        Teardown callable, invoked at most once
    category : ResourceCategory
        Classification supplying default priority and timeout
    priority : ResourcePriority
        Ordering key; lower values run first
    timeout_ms : float
        Time allowed for cleanup to complete
    registered_at : float
        Registration timestamp in epoch milliseconds
    sequence : int
        Registration counter, breaks ties between equal timestamps
    description : str | None
        Optional human-readable description
    tags : frozenset[str]
        Tags used for filtering
    dependencies : tuple[str, ...]
        Ids that must be cleaned before this resource
    metadata : dict[str, Any]
        Opaque attachment for observability
    cleaned : bool
        Terminal flag, set once by the executor path
    """

    id: str
    cleanup: CleanupCallback
    category: ResourceCategory
    priority: ResourcePriority
    timeout_ms: float
    registered_at: float
    sequence: int = 0
    description: str | None = None
    tags: frozenset[str] = field(default_factory=frozenset)
    dependencies: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    cleaned: bool = False

    def mark_cleaned(self) -> None:
        """Set the terminal cleaned flag.

        Raises
        ------
        RuntimeError
            If the definition was already cleaned
        """
        if self.cleaned:
            raise RuntimeError(f"Resource '{self.id}' is already cleaned")
        self.cleaned = True

    def sort_key(self) -> tuple[int, float, int]:
        return (int(self.priority), self.registered_at, self.sequence)


@dataclass
class CleanupOptions:
    """Selection and execution options for one cleanup pass.

    Allow-lists left as ``None`` do not filter. Exclusions are applied after
    the allow-lists are intersected.

    Attributes
    ----------
    ids : list[str] | None
        Only clean these ids
    categories : list[ResourceCategory] | None
        Only clean these categories
    tags : list[str] | None
        Only clean resources carrying any of these tags
    exclude : list[str] | None
        Never clean these ids
    exclude_categories : list[ResourceCategory] | None
        Never clean these categories
    force : bool
        Ignore unmet dependencies
    timeout_ms : float | None
        Per-resource timeout overriding every other default
    continue_on_error : bool
        Keep processing after a failure
    parallel : bool
        Overlap mutually independent resources of equal priority
    """

    ids: list[str] | None = None
    categories: list[ResourceCategory] | None = None
    tags: list[str] | None = None
    exclude: list[str] | None = None
    exclude_categories: list[ResourceCategory] | None = None
    force: bool = False
    timeout_ms: float | None = None
    continue_on_error: bool = False
    parallel: bool = False


@dataclass
class CleanupError:
    """Structured record of one failed cleanup.

    Attributes
    ----------
    resource_id : str
        Identifier of the failed resource
    category : ResourceCategory
        Category of the failed resource
    error : BaseException
        Failure raised by the executor
    timeout : bool
        Whether the failure was a timeout
    timestamp : float
        Failure time in epoch milliseconds
    """

    resource_id: str
    category: ResourceCategory
    error: BaseException
    timeout: bool
    timestamp: float = field(default_factory=now_ms)


@dataclass
class CategorySummary:
    """Per-category outcome of a pass."""

    success: int = 0
    failed: int = 0
    duration_ms: float = 0.0


def _empty_summary() -> dict[ResourceCategory, CategorySummary]:
    return {category: CategorySummary() for category in ResourceCategory}


@dataclass
class CleanupResult:
    """Aggregate outcome of one cleanup pass.

    Attributes
    ----------
    success : bool
        True if no errors occurred, or the pass ran with continue_on_error
    resources_processed : int
        Number of candidates considered
    resources_cleaned : int
        Number of candidates cleaned successfully
    errors : list[CleanupError]
        Failures in execution order
    duration_ms : float
        Wall-clock duration of the pass
    summary : dict[ResourceCategory, CategorySummary]
        Breakdown for every category
    skipped : list[str]
        Ids withheld because a dependency was not cleaned
    """

    success: bool = True
    resources_processed: int = 0
    resources_cleaned: int = 0
    errors: list[CleanupError] = field(default_factory=list)
    duration_ms: float = 0.0
    summary: dict[ResourceCategory, CategorySummary] = field(default_factory=_empty_summary)
    skipped: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


@dataclass(frozen=True)
class ResourceLeak:
    """A resource that stayed registered longer than the leak threshold."""

    resource_id: str
    category: ResourceCategory
    age_ms: float
    description: str | None
    tags: frozenset[str]
    potential_leak: bool


@dataclass
class ResourceStats:
    """Snapshot of a manager's registry.

    Attributes
    ----------
    total : int
        Live registrations
    total_registered : int
        Registrations accepted over the manager's lifetime
    by_category : dict[ResourceCategory, int]
        Live registrations per category
    by_priority : dict[ResourcePriority, int]
        Live registrations per priority
    cleaned : int
        Cumulative number of successful cleanups
    average_age_ms : float
        Mean age of live registrations
    oldest_age_ms : float
        Age of the oldest live registration
    potential_leaks : int
        Live registrations currently past the leak threshold
    """

    total: int
    total_registered: int
    by_category: dict[ResourceCategory, int]
    by_priority: dict[ResourcePriority, int]
    cleaned: int
    average_age_ms: float
    oldest_age_ms: float
    potential_leaks: int
