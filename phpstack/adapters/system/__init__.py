"""Concrete adapters for Debian/Ubuntu system tools."""

from phpstack.adapters.system.alternatives import UpdateAlternativesAdapter
from phpstack.adapters.system.apt import AptAdapter
from phpstack.adapters.system.systemd import SystemdAdapter

__all__ = ["AptAdapter", "SystemdAdapter", "UpdateAlternativesAdapter"]
