"""sweeper - resource lifecycle tracking and teardown for test suites."""

from sweeper.constants import ResourceCategory, ResourcePriority
from sweeper.core.config import ConfigLoader, ManagerConfig
from sweeper.core.events import (
    CleanupCompleted,
    CleanupStarted,
    LeakDetected,
    ResourceCleaned,
    ResourceCleanupFailed,
    ResourceEvent,
    ResourceRegistered,
    ResourceUnregistered,
)
from sweeper.core.exceptions import (
    CapacityExceededError,
    CleanupDeferredError,
    DuplicateResourceError,
    LiveDependentsError,
    ResourceCleanupError,
    ResourceCleanupTimeoutError,
    SweeperError,
    UnknownDependencyError,
)
from sweeper.core.manager import ResourceManager
from sweeper.core.models import (
    CategorySummary,
    CleanupError,
    CleanupOptions,
    CleanupResult,
    ResourceDefinition,
    ResourceLeak,
    ResourceStats,
)
from sweeper.defaults import (
    cleanup_all_resources,
    default_manager,
    detect_resource_leaks,
    get_default_manager,
    get_resource_stats,
    register_file_descriptor,
    register_resource,
)

__version__ = "0.1.0"

__all__ = [
    "CapacityExceededError",
    "CategorySummary",
    "CleanupDeferredError",
    "CleanupCompleted",
    "CleanupError",
    "CleanupOptions",
    "CleanupResult",
    "CleanupStarted",
    "ConfigLoader",
    "DuplicateResourceError",
    "LeakDetected",
    "LiveDependentsError",
    "ManagerConfig",
    "ResourceCategory",
    "ResourceCleaned",
    "ResourceCleanupError",
    "ResourceCleanupFailed",
    "ResourceCleanupTimeoutError",
    "ResourceDefinition",
    "ResourceEvent",
    "ResourceLeak",
    "ResourceManager",
    "ResourcePriority",
    "ResourceRegistered",
    "ResourceStats",
    "ResourceUnregistered",
    "SweeperError",
    "UnknownDependencyError",
    "cleanup_all_resources",
    "default_manager",
    "detect_resource_leaks",
    "get_default_manager",
    "get_resource_stats",
    "register_file_descriptor",
    "register_resource",
]
