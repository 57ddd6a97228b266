"""Unit tests for ResourceRegistry."""

import pytest

from sweeper.constants import ResourceCategory, ResourcePriority
from sweeper.core.config import ManagerConfig
from sweeper.core.exceptions import LiveDependentsError
from sweeper.core.registry import ResourceRegistry


@pytest.fixture
def registry(clock) -> ResourceRegistry:
    return ResourceRegistry(ManagerConfig(), clock=clock)


class TestRegistryBasic:
    """Test registration bookkeeping."""

    def test_register_records_timestamp_and_sequence(self, registry, clock) -> None:
        """Test definitions carry the clock reading and an increasing sequence."""
        first = registry.register("a", lambda: None)
        clock.advance(10)
        second = registry.register("b", lambda: None)

        assert first.registered_at == clock.now - 10
        assert second.registered_at == clock.now
        assert second.sequence > first.sequence
        assert len(registry) == 2
        assert "a" in registry

    def test_register_rejects_non_callable(self, registry) -> None:
        """Test cleanup must be callable."""
        with pytest.raises(TypeError):
            registry.register("bad", "not callable")

    def test_category_override_from_config(self, clock) -> None:
        """Test configured category defaults are applied."""
        config = ManagerConfig(
            category_timeouts={ResourceCategory.NETWORK: 1234},
            category_priorities={ResourceCategory.NETWORK: ResourcePriority.LOW},
        )
        registry = ResourceRegistry(config, clock=clock)

        network = registry.register("sock", lambda: None, category=ResourceCategory.NETWORK)
        timer = registry.register("t", lambda: None, category=ResourceCategory.TIMER)

        assert network.timeout_ms == 1234
        assert network.priority == ResourcePriority.LOW
        assert timer.timeout_ms == config.default_timeout_ms
        assert timer.priority == ResourcePriority.MEDIUM

    def test_category_accepts_plain_string(self, registry) -> None:
        """Test category values are normalized to the enum."""
        definition = registry.register("db", lambda: None, category="database")

        assert definition.category is ResourceCategory.DATABASE


class TestRegistryCleanedState:
    """Test cleaned bookkeeping and dependency resolution."""

    def test_mark_cleaned_removes_and_counts(self, registry) -> None:
        """Test a cleaned definition leaves the registry and is counted."""
        definition = registry.register("a", lambda: None)

        registry.mark_cleaned(definition)

        assert definition.cleaned is True
        assert "a" not in registry
        assert registry.cleaned_count == 1
        assert registry.is_dependency_satisfied("a") is True

    def test_mark_cleaned_twice_raises(self, registry) -> None:
        """Test the cleaned flag is terminal."""
        definition = registry.register("a", lambda: None)
        registry.mark_cleaned(definition)

        with pytest.raises(RuntimeError):
            registry.mark_cleaned(definition)

    def test_unknown_dependency_is_not_satisfied(self, registry) -> None:
        """Test ids never seen resolve as not cleaned."""
        assert registry.is_dependency_satisfied("ghost") is False

    def test_active_dependency_is_not_satisfied(self, registry) -> None:
        """Test an active definition resolves to its cleaned flag."""
        registry.register("a", lambda: None)

        assert registry.is_dependency_satisfied("a") is False

    def test_reregistered_id_is_not_satisfied(self, registry) -> None:
        """Test a re-registered id shadows its cleaned history."""
        registry.mark_cleaned(registry.register("a", lambda: None))
        registry.register("a", lambda: None)

        assert registry.is_dependency_satisfied("a") is False

    def test_cleaned_history_is_bounded(self, clock) -> None:
        """Test the oldest cleaned ids are forgotten first."""
        registry = ResourceRegistry(ManagerConfig(cleaned_history_limit=2), clock=clock)
        for name in ("a", "b", "c"):
            registry.mark_cleaned(registry.register(name, lambda: None))

        assert registry.is_dependency_satisfied("a") is False
        assert registry.is_dependency_satisfied("b") is True
        assert registry.is_dependency_satisfied("c") is True
        assert registry.cleaned_count == 3

    def test_unregister_with_dependents_raises(self, registry) -> None:
        """Test the live-dependents guard lists every dependent."""
        registry.register("db", lambda: None)
        registry.register("cache", lambda: None, dependencies=["db"])
        registry.register("queue", lambda: None, dependencies=["db"])

        with pytest.raises(LiveDependentsError, match="cache, queue"):
            registry.unregister("db")

    def test_clear_keeps_counters(self, registry) -> None:
        """Test clear drops active definitions but not lifetime counters."""
        registry.register("a", lambda: None)
        registry.clear()

        assert len(registry) == 0
        assert registry.total_registered == 1
