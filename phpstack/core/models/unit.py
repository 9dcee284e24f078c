"""
Installable units — declarative description of what gets installed.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class UnitKind(str, Enum):
    RUNTIME = "runtime"
    EXTENSION = "extension"
    PACKAGE = "package"
    CLI_TOOL = "cli_tool"


class InstallableUnit(BaseModel):
    """One thing the provisioner knows how to install.

    ``package_name`` maps the unit onto the Debian package naming used
    by the ondrej/php repository (``php8.2``, ``php8.2-intl``).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: UnitKind
    version: str | None = None

    @property
    def package_name(self) -> str:
        if self.kind == UnitKind.RUNTIME:
            return f"php{self.version}"
        if self.kind == UnitKind.EXTENSION:
            return f"php{self.version}-{self.name}"
        return self.name

    def __str__(self) -> str:
        if self.version and self.kind != UnitKind.RUNTIME:
            return f"{self.name}@{self.version}"
        return self.package_name


def runtime_units(version: str, extensions: list[str]) -> list[InstallableUnit]:
    """Expand one PHP version into its runtime + extension units."""
    units = [InstallableUnit(name="php", kind=UnitKind.RUNTIME, version=version)]
    units.extend(
        InstallableUnit(name=ext, kind=UnitKind.EXTENSION, version=version)
        for ext in extensions
    )
    return units


def package_units(names: list[str]) -> list[InstallableUnit]:
    return [InstallableUnit(name=n, kind=UnitKind.PACKAGE) for n in names]
