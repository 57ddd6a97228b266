"""Exceptions raised by the resource manager."""

from __future__ import annotations


class SweeperError(Exception):
    """Base exception for resource manager failures."""


class DuplicateResourceError(SweeperError):
    """Raised when registering an id that is already active.

    Parameters
    ----------
    resource_id : str
        Identifier that collided with an active registration
    """

    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Resource with ID '{resource_id}' is already registered")
        self.resource_id = resource_id


class UnknownDependencyError(SweeperError):
    """Raised when a registration lists a dependency that is not active.

    Parameters
    ----------
    resource_id : str
        Identifier being registered
    dependency_id : str
        Dependency that could not be resolved
    """

    def __init__(self, resource_id: str, dependency_id: str) -> None:
        super().__init__(
            f"Dependency '{dependency_id}' not found for resource '{resource_id}'"
        )
        self.resource_id = resource_id
        self.dependency_id = dependency_id


class CapacityExceededError(SweeperError):
    """Raised when the registry already holds its maximum number of resources.

    Parameters
    ----------
    max_resources : int
        Configured registry capacity
    """

    def __init__(self, max_resources: int) -> None:
        super().__init__(f"Maximum number of resources ({max_resources}) exceeded")
        self.max_resources = max_resources


class LiveDependentsError(SweeperError):
    """Raised when unregistering a resource that active resources depend on.

    Parameters
    ----------
    resource_id : str
        Identifier that was requested for removal
    dependents : list[str]
        Active identifiers that list it as a dependency
    """

    def __init__(self, resource_id: str, dependents: list[str]) -> None:
        super().__init__(
            f"Cannot unregister resource '{resource_id}' - "
            f"it has dependents: {', '.join(dependents)}"
        )
        self.resource_id = resource_id
        self.dependents = dependents


class ResourceCleanupError(SweeperError):
    """Failure of a single resource's cleanup callback.

    Never raised out of ``ResourceManager.cleanup``; captured into the result.
    The originating exception, if any, is available as ``__cause__``.

    Parameters
    ----------
    resource_id : str
        Identifier of the resource whose cleanup failed
    message : str
        Human-readable description
    timeout : bool
        Whether the failure was a timeout
    """

    def __init__(self, resource_id: str, message: str, timeout: bool = False) -> None:
        super().__init__(message)
        self.resource_id = resource_id
        self.timeout = timeout


class ResourceCleanupTimeoutError(ResourceCleanupError):
    """Raised when a cleanup callback does not finish within its timeout.

    Parameters
    ----------
    resource_id : str
        Identifier of the resource whose cleanup timed out
    timeout_ms : float
        Timeout that elapsed, in milliseconds
    """

    def __init__(self, resource_id: str, timeout_ms: float) -> None:
        super().__init__(
            resource_id,
            f"Cleanup timeout after {timeout_ms:g}ms for resource: {resource_id}",
            timeout=True,
        )
        self.timeout_ms = timeout_ms


class CleanupDeferredError(SweeperError):
    """Raised when a synchronous emergency cleanup cannot run yet.

    An event loop is already running in the calling thread, so a fresh pass
    cannot be started without nesting loops. Exit hooks treat this as "not
    run" and retry from the next trigger.
    """
