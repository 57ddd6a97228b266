"""Manager settings and YAML configuration loading."""

import copy
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from omegaconf import OmegaConf
from omegaconf.errors import InterpolationResolutionError

from sweeper.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_CATEGORY_PRIORITIES,
    DEFAULT_CATEGORY_TIMEOUTS_MS,
    DEFAULT_CLEANED_HISTORY_LIMIT,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_EVENT_HISTORY_LIMIT,
    DEFAULT_LEAK_DETECTION_AGE_MS,
    DEFAULT_MAX_RESOURCES,
    DEFAULT_TIMEOUT_MS,
    ResourceCategory,
    ResourcePriority,
)

logger = logging.getLogger(__name__)


@dataclass
class ManagerConfig:
    """Settings for a ResourceManager.

    Attributes
    ----------
    default_timeout_ms : float
        Fallback timeout for categories without a configured timeout
    leak_detection_age_ms : float
        Age after which an uncleaned resource is reported as a leak
    max_resources : int
        Registry capacity
    auto_register_process_handlers : bool
        Install process-exit hooks when the manager is created
    category_timeouts : dict[ResourceCategory, float]
        Default timeout per category
    category_priorities : dict[ResourceCategory, ResourcePriority]
        Default priority per category
    event_history_limit : int
        Events kept by the bus for diagnostics
    cleaned_history_limit : int
        Cleaned ids remembered for dependency resolution
    """

    default_timeout_ms: float = DEFAULT_TIMEOUT_MS
    leak_detection_age_ms: float = DEFAULT_LEAK_DETECTION_AGE_MS
    max_resources: int = DEFAULT_MAX_RESOURCES
    auto_register_process_handlers: bool = False
    category_timeouts: dict[ResourceCategory, float] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_TIMEOUTS_MS)
    )
    category_priorities: dict[ResourceCategory, ResourcePriority] = field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_PRIORITIES)
    )
    event_history_limit: int = DEFAULT_EVENT_HISTORY_LIMIT
    cleaned_history_limit: int = DEFAULT_CLEANED_HISTORY_LIMIT

    def validate(self) -> None:
        """Validate numeric settings.

        Raises
        ------
        ValueError
            If a duration or limit is not positive
        """
        for name in (
            "default_timeout_ms",
            "leak_detection_age_ms",
            "max_resources",
            "event_history_limit",
            "cleaned_history_limit",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise ValueError(f"{name} must be a positive number, got {value!r}")

        for category, timeout in self.category_timeouts.items():
            if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
                raise ValueError(
                    f"category_timeouts[{category.value}] must be a positive number, "
                    f"got {timeout!r}"
                )

    def timeout_for(self, category: ResourceCategory) -> float:
        """Return the default timeout for a category.

        Parameters
        ----------
        category : ResourceCategory
            Category to look up

        Returns
        -------
        float
            Category timeout, or the manager default if none is configured
        """
        return self.category_timeouts.get(category, self.default_timeout_ms)

    def priority_for(self, category: ResourceCategory) -> ResourcePriority:
        """Return the default priority for a category."""
        return self.category_priorities.get(
            category, DEFAULT_CATEGORY_PRIORITIES.get(category, ResourcePriority.MEDIUM)
        )

    def to_dict(self) -> dict[str, Any]:
        """Render the configuration as plain YAML-friendly values."""
        data = asdict(self)
        data["category_timeouts"] = {
            category.value: timeout for category, timeout in self.category_timeouts.items()
        }
        data["category_priorities"] = {
            category.value: priority.name.lower()
            for category, priority in self.category_priorities.items()
        }
        return data


class ConfigLoader:
    """Load manager settings from YAML and merge them with defaults."""

    SECTION = "resources"

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS = ManagerConfig().to_dict()

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks SWEEPER_CONFIG env var,
            then falls back to sweeper.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with all variable interpolations resolved

        Raises
        ------
        omegaconf.errors.InterpolationResolutionError
            If undefined variables are referenced or circular references exist
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILENAME)

        config_file = Path(config_path)

        if not config_file.exists():
            logger.debug("Config file %s not found, using built-in defaults", config_file)
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ValueError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise RuntimeError(f"Failed to read config file {config_file}: {e}") from e

        if cfg is None:
            return {}

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except InterpolationResolutionError as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise
        except (ValueError, KeyError, AttributeError) as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ValueError(f"Configuration variable resolution error: {e}") from e

        if not isinstance(config, dict):
            raise ValueError(f"Top level of {config_file} must be a mapping")

        return config

    def build_manager_config(self, config: dict[str, Any]) -> ManagerConfig:
        """Merge the ``resources`` section over the built-in defaults.

        Parameters
        ----------
        config : dict[str, Any]
            Configuration as returned by load_config

        Returns
        -------
        ManagerConfig
            Validated manager configuration

        Raises
        ------
        ValueError
            If the section contains unknown keys, categories or priorities
        """
        merged = copy.deepcopy(self.BUILT_IN_DEFAULTS)
        section = config.get(self.SECTION) or {}

        if not isinstance(section, dict):
            raise ValueError(f"'{self.SECTION}' section must be a mapping")

        known = {f.name for f in fields(ManagerConfig)}
        unknown = sorted(set(section) - known)
        if unknown:
            raise ValueError(f"Unknown {self.SECTION} settings: {', '.join(unknown)}")

        for key, value in section.items():
            if key in ("category_timeouts", "category_priorities"):
                merged[key].update(value or {})
            else:
                merged[key] = value

        merged["category_timeouts"] = {
            _parse_category(name): timeout
            for name, timeout in merged["category_timeouts"].items()
        }
        merged["category_priorities"] = {
            _parse_category(name): _parse_priority(priority)
            for name, priority in merged["category_priorities"].items()
        }

        manager_config = ManagerConfig(**merged)
        manager_config.validate()
        return manager_config

    def load_manager_config(self, config_path: str | None = None) -> ManagerConfig:
        """Load YAML and build a validated ManagerConfig in one step."""
        return self.build_manager_config(self.load_config(config_path))


def _parse_category(name: Any) -> ResourceCategory:
    try:
        return ResourceCategory(name)
    except ValueError as e:
        raise ValueError(f"Unknown resource category: {name!r}") from e


def _parse_priority(value: Any) -> ResourcePriority:
    if isinstance(value, ResourcePriority):
        return value

    if isinstance(value, str):
        try:
            return ResourcePriority[value.upper()]
        except KeyError as e:
            raise ValueError(f"Unknown resource priority: {value!r}") from e

    try:
        return ResourcePriority(value)
    except ValueError as e:
        raise ValueError(f"Unknown resource priority: {value!r}") from e
