"""Adapters — bindings to the external tools a provisioning run drives.

Public re-exports for convenient access.
"""

from phpstack.adapters.base import (
    Adapter,
    AlternativesManager,
    PackageManager,
    ServiceManager,
)
from phpstack.adapters.registry import SystemAdapters, default_adapters
from phpstack.adapters.shell.command import CommandGateway, CommandResult

__all__ = [
    "Adapter",
    "AlternativesManager",
    "CommandGateway",
    "CommandResult",
    "PackageManager",
    "ServiceManager",
    "SystemAdapters",
    "default_adapters",
]
