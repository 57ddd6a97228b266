"""CLI entry point for sweeper."""

from __future__ import annotations

import logging
import os
import sys

import fire
import yaml

from sweeper.constants import ResourceCategory
from sweeper.core.config import ConfigLoader
from sweeper.logging import configure_logging


class SweeperCLI:
    """Inspect sweeper configuration.

    Parameters
    ----------
    config_loader : ConfigLoader | None
        Loader used to resolve configuration, a default one if None
    """

    def __init__(self, config_loader: ConfigLoader | None = None) -> None:
        self._config_loader = config_loader or ConfigLoader()

    def config(self, path: str | None = None) -> str:
        """Print the effective manager configuration as YAML.

        Parameters
        ----------
        path : str | None
            Config file; defaults to $SWEEPER_CONFIG, then sweeper.yaml

        Returns
        -------
        str
            YAML document with built-in defaults merged with the file
        """
        manager_config = self._config_loader.load_manager_config(path)
        return yaml.safe_dump(
            {ConfigLoader.SECTION: manager_config.to_dict()}, sort_keys=False
        ).rstrip()

    def defaults(self, path: str | None = None) -> str:
        """Print the default priority and timeout of every category.

        Parameters
        ----------
        path : str | None
            Config file whose category overrides should be applied

        Returns
        -------
        str
            One aligned line per category
        """
        manager_config = self._config_loader.load_manager_config(path)
        lines = [f"{'category':<10} {'priority':<9} timeout_ms"]
        for category in ResourceCategory:
            priority = manager_config.priority_for(category)
            timeout = manager_config.timeout_for(category)
            lines.append(f"{category.value:<10} {priority.name.lower():<9} {timeout:g}")
        return "\n".join(lines)


def main() -> None:
    """Entry point for Fire CLI with graceful error handling.

    Notes
    -----
    Set SWEEPER_DEBUG=1 to re-raise errors with a full traceback.
    """
    debug_mode = os.environ.get("SWEEPER_DEBUG") == "1"
    configure_logging(logging.DEBUG if debug_mode else logging.WARNING)

    try:
        fire.Fire(SweeperCLI())
    except (ValueError, RuntimeError) as e:
        if debug_mode:
            raise
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
