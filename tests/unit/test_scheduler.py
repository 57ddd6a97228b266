"""Unit tests for candidate selection and ordering."""

from sweeper.constants import ResourceCategory, ResourcePriority
from sweeper.core.models import CleanupOptions, ResourceDefinition
from sweeper.core.scheduler import order_candidates, plan_parallel_groups, select_candidates


def make_definition(
    resource_id: str,
    priority: ResourcePriority = ResourcePriority.MEDIUM,
    category: ResourceCategory = ResourceCategory.EVENT,
    registered_at: float = 0.0,
    sequence: int = 0,
    tags: tuple[str, ...] = (),
    dependencies: tuple[str, ...] = (),
) -> ResourceDefinition:
    return ResourceDefinition(
        id=resource_id,
        cleanup=lambda: None,
        category=category,
        priority=priority,
        timeout_ms=1000,
        registered_at=registered_at,
        sequence=sequence,
        tags=frozenset(tags),
        dependencies=dependencies,
    )


def ids(definitions) -> list[str]:
    return [definition.id for definition in definitions]


class TestSelectCandidates:
    """Test filter composition."""

    def setup_method(self) -> None:
        self.definitions = [
            make_definition("db", category=ResourceCategory.DATABASE, tags=("data",)),
            make_definition("file", category=ResourceCategory.FILE, tags=("data", "tmp")),
            make_definition("timer", category=ResourceCategory.TIMER),
        ]

    def test_no_filters_selects_everything(self) -> None:
        """Test default options select all definitions."""
        assert ids(select_candidates(self.definitions, CleanupOptions())) == ["db", "file", "timer"]

    def test_allow_lists_intersect(self) -> None:
        """Test ids, categories and tags must all match."""
        options = CleanupOptions(
            ids=["db", "file"],
            categories=[ResourceCategory.FILE, ResourceCategory.TIMER],
            tags=["tmp"],
        )

        assert ids(select_candidates(self.definitions, options)) == ["file"]

    def test_tags_match_any(self) -> None:
        """Test tag filter selects definitions carrying any listed tag."""
        options = CleanupOptions(tags=["tmp", "missing"])

        assert ids(select_candidates(self.definitions, options)) == ["file"]

    def test_exclusions_subtract(self) -> None:
        """Test exclude and exclude_categories remove from the allow-list result."""
        options = CleanupOptions(
            tags=["data"],
            exclude=["file"],
            exclude_categories=[ResourceCategory.TIMER],
        )

        assert ids(select_candidates(self.definitions, options)) == ["db"]

    def test_empty_allow_list_selects_nothing(self) -> None:
        """Test an empty id list is not the same as no filter."""
        assert select_candidates(self.definitions, CleanupOptions(ids=[])) == []


class TestOrderCandidates:
    """Test deterministic ordering."""

    def test_priority_then_time_then_sequence(self) -> None:
        """Test sort keys are applied in order."""
        definitions = [
            make_definition("low", ResourcePriority.LOW, registered_at=0, sequence=0),
            make_definition("late", ResourcePriority.CRITICAL, registered_at=20, sequence=1),
            make_definition("tie-b", ResourcePriority.CRITICAL, registered_at=10, sequence=3),
            make_definition("tie-a", ResourcePriority.CRITICAL, registered_at=10, sequence=2),
        ]

        assert ids(order_candidates(definitions)) == ["tie-a", "tie-b", "late", "low"]


class TestPlanParallelGroups:
    """Test grouping for parallel execution."""

    def test_groups_split_on_priority(self) -> None:
        """Test groups never mix priorities."""
        ordered = [
            make_definition("a", ResourcePriority.CRITICAL, sequence=0),
            make_definition("b", ResourcePriority.CRITICAL, sequence=1),
            make_definition("c", ResourcePriority.HIGH, sequence=2),
        ]

        assert [ids(group) for group in plan_parallel_groups(ordered)] == [["a", "b"], ["c"]]

    def test_groups_split_on_dependency_edge(self) -> None:
        """Test a dependent never shares a group with its dependency."""
        ordered = [
            make_definition("db", sequence=0),
            make_definition("other", sequence=1),
            make_definition("cache", sequence=2, dependencies=("db",)),
            make_definition("queue", sequence=3),
        ]

        groups = [ids(group) for group in plan_parallel_groups(ordered)]

        assert groups == [["db", "other"], ["cache", "queue"]]

    def test_reverse_edge_also_splits(self) -> None:
        """Test a dependency ordered after its dependent starts a new group."""
        ordered = [
            make_definition("session", sequence=0, dependencies=("pool",)),
            make_definition("pool", sequence=1),
        ]

        assert [ids(group) for group in plan_parallel_groups(ordered)] == [["session"], ["pool"]]

    def test_empty(self) -> None:
        """Test no candidates yields no groups."""
        assert plan_parallel_groups([]) == []
