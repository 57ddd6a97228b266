"""Core resource lifecycle functionality."""

from __future__ import annotations

from sweeper.core.config import ConfigLoader, ManagerConfig
from sweeper.core.events import EventBus, ResourceEvent
from sweeper.core.manager import ResourceManager
from sweeper.core.registry import ResourceRegistry
from sweeper.core.signals import ProcessExitHooks

__all__ = [
    "ConfigLoader",
    "EventBus",
    "ManagerConfig",
    "ProcessExitHooks",
    "ResourceEvent",
    "ResourceManager",
    "ResourceRegistry",
]
