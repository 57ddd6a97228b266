"""Global constants for sweeper.

This module contains defaults shared by the registry, the executor and the
configuration loader. Durations are expressed in milliseconds to match the
``timeout_ms`` options accepted by the public API.
"""

from enum import Enum, IntEnum


class ResourceCategory(str, Enum):
    """Coarse classification of a tracked resource."""

    DATABASE = "database"
    FILE = "file"
    PROCESS = "process"
    TIMER = "timer"
    NETWORK = "network"
    EVENT = "event"
    CRITICAL = "critical"


class ResourcePriority(IntEnum):
    """Cleanup ordering; lower values are cleaned earlier."""

    CRITICAL = 0
    HIGH = 1
    MEDIUM = 2
    LOW = 3


DEFAULT_CATEGORY = ResourceCategory.EVENT
"""Category assigned to registrations that do not name one."""

DEFAULT_CATEGORY_PRIORITIES: dict[ResourceCategory, ResourcePriority] = {
    ResourceCategory.CRITICAL: ResourcePriority.CRITICAL,
    ResourceCategory.DATABASE: ResourcePriority.CRITICAL,
    ResourceCategory.FILE: ResourcePriority.HIGH,
    ResourceCategory.NETWORK: ResourcePriority.HIGH,
    ResourceCategory.PROCESS: ResourcePriority.HIGH,
    ResourceCategory.EVENT: ResourcePriority.MEDIUM,
    ResourceCategory.TIMER: ResourcePriority.MEDIUM,
}
"""Priority derived from category when a registration does not set one."""

DEFAULT_CATEGORY_TIMEOUTS_MS: dict[ResourceCategory, int] = {
    ResourceCategory.CRITICAL: 30_000,
    ResourceCategory.DATABASE: 15_000,
    ResourceCategory.FILE: 10_000,
    ResourceCategory.NETWORK: 10_000,
    ResourceCategory.PROCESS: 20_000,
    ResourceCategory.EVENT: 5_000,
    ResourceCategory.TIMER: 5_000,
}
"""Cleanup timeout derived from category when a registration does not set one.

Process teardown gets the longest non-critical budget because child processes
commonly need a grace period between SIGTERM and SIGKILL.
"""

DEFAULT_TIMEOUT_MS = 10_000
"""Manager-wide fallback timeout for categories without a configured default."""

DEFAULT_LEAK_DETECTION_AGE_MS = 60_000
"""Age after which an uncleaned resource is reported as a leak.

Resources older than twice this age are additionally flagged as potential leaks.
"""

DEFAULT_MAX_RESOURCES = 10_000
"""Maximum number of simultaneously registered resources per manager."""

DEFAULT_EVENT_HISTORY_LIMIT = 50
"""Number of recent events retained by the event bus for diagnostics."""

DEFAULT_CLEANED_HISTORY_LIMIT = 10_000
"""Number of cleaned resource ids remembered for dependency resolution.

Cleaned definitions are removed from the active registry; only their ids are
kept so that dependents registered against them can still be released.
"""

EXIT_CLEANUP_TIMEOUT_MS = 5_000
"""Per-resource timeout used by the process-exit cleanup pass."""

FILE_DESCRIPTOR_TAG = "file-descriptor"
"""Tag attached to resources registered through register_file_descriptor."""

CONFIG_ENV_VAR = "SWEEPER_CONFIG"
"""Environment variable naming the YAML configuration file."""

DEFAULT_CONFIG_FILENAME = "sweeper.yaml"
"""Configuration file looked up in the working directory by default."""


class ExitCode(int, Enum):
    """Process exit codes used when a termination signal triggers cleanup."""

    SIGINT = 130
    SIGTERM = 143
    OTHER = 1
