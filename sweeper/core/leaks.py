"""Age-based leak heuristics over active resource definitions."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from sweeper.core.models import ResourceDefinition, ResourceLeak, now_ms


class LeakDetector:
    """Reports resources that stayed registered longer than a threshold.

    Scanning is read-only; it never cleans or removes anything.

    Parameters
    ----------
    threshold_ms : float
        Age after which a resource is reported
    clock : Callable[[], float]
        Returns the current time in epoch milliseconds
    """

    def __init__(self, threshold_ms: float, clock: Callable[[], float] = now_ms) -> None:
        self.threshold_ms = threshold_ms
        self._clock = clock

    def scan(self, definitions: Iterable[ResourceDefinition]) -> list[ResourceLeak]:
        """Find definitions older than the threshold.

        Parameters
        ----------
        definitions : Iterable[ResourceDefinition]
            Definitions to inspect; cleaned ones are ignored

        Returns
        -------
        list[ResourceLeak]
            Findings, flagged ``potential_leak`` past twice the threshold
        """
        now = self._clock()
        leaks = []

        for definition in definitions:
            if definition.cleaned:
                continue

            age = now - definition.registered_at
            if age > self.threshold_ms:
                leaks.append(
                    ResourceLeak(
                        resource_id=definition.id,
                        category=definition.category,
                        age_ms=age,
                        description=definition.description,
                        tags=definition.tags,
                        potential_leak=age > self.threshold_ms * 2,
                    )
                )

        return leaks
