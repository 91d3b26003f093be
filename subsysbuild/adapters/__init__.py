"""Adapters — subprocess bindings for the execution subsystem.

Public re-exports for convenient access.
"""

from subsysbuild.adapters.base import Adapter, ExecutionContext
from subsysbuild.adapters.mock import MockAdapter
from subsysbuild.adapters.shell.command import SubsystemShellAdapter
from subsysbuild.adapters.shell.package_manager import PackageManager

__all__ = [
    "Adapter",
    "ExecutionContext",
    "MockAdapter",
    "PackageManager",
    "SubsystemShellAdapter",
]
