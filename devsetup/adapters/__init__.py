"""Adapters — executors for external effects.

Public re-exports for convenient access.
"""

from devsetup.adapters.base import Adapter, ExecutionContext
from devsetup.adapters.mock import MockAdapter
from devsetup.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
