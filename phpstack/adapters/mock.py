"""
Mock adapters — in-memory test doubles for the system tool contracts.

They keep just enough state to make re-runs observable: a package
installed once is reported as installed afterwards, a registered
alternative shows up in ``current``.  Every call is logged.
"""

from __future__ import annotations

from pathlib import Path

from phpstack.adapters.base import AlternativesManager, PackageManager, ServiceManager
from phpstack.adapters.shell.command import CommandResult
from phpstack.core.errors import CommandError, PackageManagerError
from phpstack.core.models.unit import InstallableUnit


class MockPackageManager(PackageManager):
    """Package manager backed by a set of installed package names."""

    def __init__(
        self,
        installed: set[str] | None = None,
        repositories: set[str] | None = None,
        available: bool = True,
    ):
        self.installed: set[str] = set(installed or ())
        self.repositories: set[str] = set(repositories or ())
        self._available = available
        self._failing: dict[str, str] = {}
        self.call_log: list[tuple[str, tuple[str, ...]]] = []

    @property
    def name(self) -> str:
        return "mock-apt"

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, package: str, error: str = "Mock failure") -> None:
        """Make any install that includes *package* fail."""
        self._failing[package] = error

    def refresh(self) -> None:
        self.call_log.append(("refresh", ()))
        if "__refresh__" in self._failing:
            raise PackageManagerError(self._failing["__refresh__"])

    def is_installed(self, unit: InstallableUnit) -> bool:
        return unit.package_name in self.installed

    def install(self, units: list[InstallableUnit]) -> None:
        packages = tuple(u.package_name for u in units)
        self.call_log.append(("install", packages))
        for pkg in packages:
            if pkg in self._failing:
                raise PackageManagerError(f"Failed to install {pkg}: {self._failing[pkg]}")
        self.installed.update(packages)

    def has_repository(self, fragment: str) -> bool:
        return any(fragment in repo for repo in self.repositories)

    def add_repository(self, repository: str) -> None:
        self.call_log.append(("add_repository", (repository,)))
        self.repositories.add(repository)

    @property
    def install_calls(self) -> list[tuple[str, ...]]:
        return [args for op, args in self.call_log if op == "install"]


class MockServiceManager(ServiceManager):
    """Service manager with a fixed set of running services."""

    def __init__(self, active: set[str] | None = None):
        self.active: set[str] = set(active or ())
        self.restarted: list[str] = []

    @property
    def name(self) -> str:
        return "mock-systemd"

    def is_available(self) -> bool:
        return True

    def is_active(self, service: str) -> bool:
        return service in self.active

    def restart_service(self, service: str) -> None:
        self.restarted.append(service)


class MockAlternatives(AlternativesManager):
    """Alternatives registry kept in a dict of group → {target: priority}."""

    def __init__(self, fail_register: bool = False):
        self.groups: dict[str, dict[str, int]] = {}
        self.selected: dict[str, str] = {}
        self.resets: list[str] = []
        self._fail_register = fail_register

    @property
    def name(self) -> str:
        return "mock-alternatives"

    def is_available(self) -> bool:
        return True

    def reset(self, group: str) -> None:
        self.resets.append(group)
        self.groups.pop(group, None)
        self.selected.pop(group, None)

    def register(self, link: Path, group: str, target: Path, priority: int) -> None:
        if self._fail_register:
            raise CommandError(CommandResult(
                argv=["update-alternatives", "--install", str(link), group,
                      str(target), str(priority)],
                returncode=2,
                stderr="mock register failure",
            ))
        self.groups.setdefault(group, {})[str(target)] = priority

    def set_default(self, group: str, target: Path) -> None:
        self.selected[group] = str(target)

    def registered(self, group: str) -> dict[str, int]:
        return dict(self.groups.get(group, {}))

    def current(self, group: str) -> str | None:
        if group in self.selected:
            return self.selected[group]
        candidates = self.groups.get(group)
        if not candidates:
            return None
        return max(candidates.items(), key=lambda kv: kv[1])[0]
