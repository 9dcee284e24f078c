"""
APT adapter — package queries and installs on Debian/Ubuntu.

Installed-state queries use ``dpkg-query``, which is read-only and so
runs as the invoking identity.  Everything that changes the system
goes through ``apt-get`` / ``add-apt-repository`` and therefore needs
elevation.
"""

from __future__ import annotations

import logging
from pathlib import Path

from phpstack.adapters.base import PackageManager
from phpstack.adapters.shell.command import CommandGateway, CommandResult
from phpstack.core.errors import PackageManagerError
from phpstack.core.models.unit import InstallableUnit

logger = logging.getLogger(__name__)

APT_ROOT = Path("/etc/apt")

_NONINTERACTIVE = {"DEBIAN_FRONTEND": "noninteractive"}


def _last_line(result: CommandResult) -> str:
    lines = [ln for ln in result.stderr.strip().splitlines() if ln.strip()]
    return lines[-1] if lines else f"exit {result.returncode}"


class AptAdapter(PackageManager):
    """apt-get / dpkg-query bound to a command gateway."""

    def __init__(self, gateway: CommandGateway, apt_root: Path = APT_ROOT):
        self._gateway = gateway
        self._apt_root = apt_root

    @property
    def name(self) -> str:
        return "apt"

    def is_available(self) -> bool:
        return self._gateway.which("apt-get") is not None

    def refresh(self) -> None:
        logger.info("Updating package index...")
        result = self._gateway.run(["apt-get", "update"], env=_NONINTERACTIVE)
        if not result.ok:
            raise PackageManagerError(
                f"Failed to update package index: {_last_line(result)}"
            )

    def is_installed(self, unit: InstallableUnit) -> bool:
        result = self._gateway.run(
            ["dpkg-query", "-W", "-f=${Status}", unit.package_name],
        )
        return "install ok installed" in result.stdout

    def install(self, units: list[InstallableUnit]) -> None:
        if not units:
            return
        packages = [u.package_name for u in units]
        logger.info("Installing %d package(s): %s", len(packages), " ".join(packages))
        result = self._gateway.run(
            ["apt-get", "install", "-y", *packages],
            env=_NONINTERACTIVE,
        )
        if not result.ok:
            raise PackageManagerError(
                f"Failed to install {', '.join(packages)}: {_last_line(result)}"
            )

    def _source_files(self) -> list[Path]:
        files = [self._apt_root / "sources.list"]
        list_dir = self._apt_root / "sources.list.d"
        if list_dir.is_dir():
            files.extend(sorted(p for p in list_dir.iterdir() if p.is_file()))
        return [f for f in files if f.is_file()]

    def has_repository(self, fragment: str) -> bool:
        for path in self._source_files():
            try:
                if fragment in path.read_text(encoding="utf-8", errors="replace"):
                    logger.debug("Repository '%s' found in %s", fragment, path)
                    return True
            except OSError as e:
                logger.debug("Cannot read %s: %s", path, e)
        return False

    def add_repository(self, repository: str) -> None:
        logger.info("Adding repository %s...", repository)
        result = self._gateway.run(
            ["add-apt-repository", "-y", repository],
            env=_NONINTERACTIVE,
        )
        if not result.ok:
            raise PackageManagerError(
                f"Failed to add repository {repository}: {_last_line(result)}"
            )
