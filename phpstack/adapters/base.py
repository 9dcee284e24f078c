"""
Adapter base — the narrow contracts between steps and system tools.

Steps never shell out to apt, systemctl or update-alternatives
themselves; they talk to one of these interfaces.  Each interface has
one concrete adapter per external tool, plus an in-memory double in
``phpstack.adapters.mock`` for tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from phpstack.core.models.unit import InstallableUnit


class Adapter(ABC):
    """Abstract base class for all adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'apt', 'systemd')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available.

        Should be fast and never raise.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class PackageManager(Adapter):
    """System package manager (apt on Debian/Ubuntu)."""

    @abstractmethod
    def refresh(self) -> None:
        """Refresh the package index.

        Raises:
            PackageManagerError: the index could not be refreshed.
        """

    @abstractmethod
    def is_installed(self, unit: InstallableUnit) -> bool:
        """Whether *unit*'s package is fully installed."""

    def missing(self, units: list[InstallableUnit]) -> list[InstallableUnit]:
        """Subset of *units* that are not installed yet, in order."""
        return [u for u in units if not self.is_installed(u)]

    @abstractmethod
    def install(self, units: list[InstallableUnit]) -> None:
        """Install *units* in one transaction.

        Raises:
            PackageManagerError: the package manager reported failure.
        """

    @abstractmethod
    def has_repository(self, fragment: str) -> bool:
        """Whether any configured source mentions *fragment*."""

    @abstractmethod
    def add_repository(self, repository: str) -> None:
        """Register an extra repository (e.g. ``ppa:ondrej/php``).

        Raises:
            PackageManagerError: registration failed.
        """


class ServiceManager(Adapter):
    """Service control (systemd)."""

    @abstractmethod
    def is_active(self, service: str) -> bool:
        """Whether *service* is currently running."""

    @abstractmethod
    def restart_service(self, service: str) -> None:
        """Restart *service*.

        Raises:
            CommandError: the service manager reported failure.
        """


class AlternativesManager(Adapter):
    """Default-binary selection (Debian alternatives system)."""

    @abstractmethod
    def reset(self, group: str) -> None:
        """Drop every registered alternative for *group*; never raises
        on an empty group."""

    @abstractmethod
    def register(self, link: Path, group: str, target: Path, priority: int) -> None:
        """Register *target* as a candidate for *group*."""

    @abstractmethod
    def set_default(self, group: str, target: Path) -> None:
        """Pin *group* to *target*."""

    @abstractmethod
    def registered(self, group: str) -> dict[str, int]:
        """Registered candidates for *group* as ``{target: priority}``."""

    @abstractmethod
    def current(self, group: str) -> str | None:
        """Path *group* currently resolves to, or None."""
