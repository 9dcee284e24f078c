"""
Adapter registry — the set of system adapters one run talks to.

Steps receive a ``SystemAdapters`` bundle instead of constructing
adapters themselves, so tests swap the whole system layer for mocks in
one place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from phpstack.adapters.base import (
    Adapter,
    AlternativesManager,
    PackageManager,
    ServiceManager,
)
from phpstack.adapters.shell.command import CommandGateway
from phpstack.adapters.shell.filesystem import FilesystemAdapter

logger = logging.getLogger(__name__)


@dataclass
class SystemAdapters:
    """Every adapter a provisioning run needs, bound to one gateway."""

    gateway: CommandGateway
    packages: PackageManager
    services: ServiceManager
    alternatives: AlternativesManager
    filesystem: FilesystemAdapter

    def _all(self) -> list[Adapter]:
        return [self.packages, self.services, self.alternatives, self.filesystem]

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Get availability status of all adapters."""
        status = {}
        for adapter in self._all():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[adapter.name] = {
                "name": adapter.name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def default_adapters(gateway: CommandGateway) -> SystemAdapters:
    """Real Debian/Ubuntu adapters bound to *gateway*."""
    from phpstack.adapters.system import (
        AptAdapter,
        SystemdAdapter,
        UpdateAlternativesAdapter,
    )

    return SystemAdapters(
        gateway=gateway,
        packages=AptAdapter(gateway),
        services=SystemdAdapter(gateway),
        alternatives=UpdateAlternativesAdapter(gateway),
        filesystem=FilesystemAdapter(gateway.context),
    )
