"""Candidate selection and deterministic ordering for cleanup passes."""

from __future__ import annotations

from collections.abc import Iterable

from sweeper.core.models import CleanupOptions, ResourceDefinition


def select_candidates(
    definitions: Iterable[ResourceDefinition], options: CleanupOptions
) -> list[ResourceDefinition]:
    """Apply allow-lists and exclusions to a set of definitions.

    Allow-lists (ids, categories, tags) are intersected; exclusions
    (exclude, exclude_categories) are removed from the result. An allow-list
    of ``None`` does not filter, an empty one selects nothing.

    Parameters
    ----------
    definitions : Iterable[ResourceDefinition]
        Active definitions
    options : CleanupOptions
        Filters for this pass

    Returns
    -------
    list[ResourceDefinition]
        Selected definitions, in input order
    """
    ids = set(options.ids) if options.ids is not None else None
    categories = set(options.categories) if options.categories is not None else None
    tags = set(options.tags) if options.tags is not None else None
    exclude = set(options.exclude or ())
    exclude_categories = set(options.exclude_categories or ())

    selected = []
    for definition in definitions:
        if ids is not None and definition.id not in ids:
            continue
        if categories is not None and definition.category not in categories:
            continue
        if tags is not None and not (definition.tags & tags):
            continue
        if definition.id in exclude or definition.category in exclude_categories:
            continue
        selected.append(definition)

    return selected


def order_candidates(candidates: Iterable[ResourceDefinition]) -> list[ResourceDefinition]:
    """Sort by priority, then registration time, then registration sequence."""
    return sorted(candidates, key=ResourceDefinition.sort_key)


def plan_parallel_groups(
    ordered: list[ResourceDefinition],
) -> list[list[ResourceDefinition]]:
    """Split an ordered candidate list into groups safe to run concurrently.

    A group holds consecutive candidates of equal priority with no dependency
    edge between any two members. Groups must run one after another.

    Parameters
    ----------
    ordered : list[ResourceDefinition]
        Candidates as returned by order_candidates

    Returns
    -------
    list[list[ResourceDefinition]]
        Groups in execution order
    """
    groups: list[list[ResourceDefinition]] = []
    current: list[ResourceDefinition] = []
    current_ids: set[str] = set()

    for definition in ordered:
        conflicts = bool(current) and (
            definition.priority != current[0].priority
            or any(dep in current_ids for dep in definition.dependencies)
            or any(definition.id in member.dependencies for member in current)
        )
        if conflicts:
            groups.append(current)
            current = []
            current_ids = set()

        current.append(definition)
        current_ids.add(definition.id)

    if current:
        groups.append(current)

    return groups
