"""Adapters — bindings for makepkg, pacman, git, the filesystem and qtile.

Public re-exports for convenient access.
"""

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.adapters.mock import MockAdapter
from update_qtile.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
