"""Pytest configuration and fixtures for sweeper tests."""

import os
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest
import yaml

from sweeper.core.config import ManagerConfig
from sweeper.core.manager import ResourceManager
from sweeper.defaults import default_manager


class FakeClock:
    """Manually advanced millisecond clock.

    Parameters
    ----------
    start_ms : float
        Initial reading
    """

    def __init__(self, start_ms: float = 1_000_000.0) -> None:
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake clock starting at a fixed time.

    Returns
    -------
    FakeClock
        Clock advanced explicitly by tests
    """
    return FakeClock()


@pytest.fixture
def make_manager(clock: FakeClock) -> Callable[..., ResourceManager]:
    """Build ResourceManager instances wired to the fake clock.

    Returns
    -------
    Callable[..., ResourceManager]
        Factory accepting ManagerConfig keyword overrides
    """

    def _make(**overrides: Any) -> ResourceManager:
        return ResourceManager(ManagerConfig(**overrides), clock=clock)

    return _make


@pytest.fixture
def manager(make_manager: Callable[..., ResourceManager]) -> ResourceManager:
    """Provide a manager with default settings and the fake clock."""
    return make_manager()


@pytest.fixture(autouse=True)
def reset_default_manager() -> Generator[None, None, None]:
    """Ensure every test starts and ends without a default manager.

    Yields
    ------
    None
        Control back to test with a pristine default manager holder
    """
    default_manager.reset()

    yield

    default_manager.reset()


@pytest.fixture
def config_file(tmp_path: Path) -> Generator[Path, None, None]:
    """Create a temporary config file path and point SWEEPER_CONFIG at it.

    Parameters
    ----------
    tmp_path : Path
        Pytest temporary directory path

    Yields
    ------
    Path
        Path to temporary config file
    """
    config_path = tmp_path / "sweeper.yaml"

    original_env = os.environ.get("SWEEPER_CONFIG")
    os.environ["SWEEPER_CONFIG"] = str(config_path)

    yield config_path

    if original_env is not None:
        os.environ["SWEEPER_CONFIG"] = original_env
    elif "SWEEPER_CONFIG" in os.environ:
        del os.environ["SWEEPER_CONFIG"]


@pytest.fixture
def write_config(config_file: Path) -> Callable[[dict[str, Any]], None]:
    """Helper fixture to write config data to file.

    Parameters
    ----------
    config_file : Path
        Path to config file from config_file fixture

    Returns
    -------
    Callable[[dict[str, Any]], None]
        Function that dumps a mapping as YAML to the config file
    """

    def _write(config_data: dict[str, Any]) -> None:
        with open(config_file, "w") as f:
            yaml.dump(config_data, f)

    return _write
