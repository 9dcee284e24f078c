"""
Status use case — what the provisioning run left on this host.

Read-only: no command here is on the elevated allow-list, so status
works without sudo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from phpstack.adapters.registry import SystemAdapters
from phpstack.core.context import ProvisionContext
from phpstack.core.engine.steps import ALTERNATIVE_GROUP, BIN_DIR
from phpstack.core.models.config import ProvisionConfig
from phpstack.core.models.unit import runtime_units
from phpstack.core.services.profile import ProfileMutator

USER_TOOLS = ("composer", "laravel", "symfony")


@dataclass
class RuntimeStatus:
    version: str
    packages_installed: bool = False
    missing_packages: list[str] = field(default_factory=list)
    binary: bool = False


@dataclass
class StatusResult:
    """Aggregated provisioning status."""

    username: str = ""
    home: Path | None = None
    elevated: bool = False
    runtimes: list[RuntimeStatus] = field(default_factory=list)
    current_php: str | None = None
    tools: dict[str, str | None] = field(default_factory=dict)
    profile_path: Path | None = None
    helpers_installed: bool = False
    adapters: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "user": {
                "username": self.username,
                "home": str(self.home) if self.home else None,
                "elevated": self.elevated,
            },
            "runtimes": [
                {
                    "version": r.version,
                    "packages_installed": r.packages_installed,
                    "missing_packages": r.missing_packages,
                    "binary": r.binary,
                }
                for r in self.runtimes
            ],
            "current_php": self.current_php,
            "tools": self.tools,
            "profile": {
                "path": str(self.profile_path) if self.profile_path else None,
                "helpers_installed": self.helpers_installed,
            },
            "adapters": self.adapters,
        }


def get_status(
    context: ProvisionContext,
    config: ProvisionConfig,
    adapters: SystemAdapters,
    bin_dir: Path = BIN_DIR,
) -> StatusResult:
    """Inspect packages, alternatives, user tools and the profile."""
    result = StatusResult(
        username=context.identity.username,
        home=context.identity.home,
        elevated=context.elevation_held,
        adapters=adapters.adapter_status(),
    )

    for version in config.php_versions:
        missing = adapters.packages.missing(runtime_units(version, config.php_extensions))
        result.runtimes.append(RuntimeStatus(
            version=version,
            packages_installed=not missing,
            missing_packages=[u.package_name for u in missing],
            binary=(bin_dir / f"php{version}").is_file(),
        ))

    result.current_php = adapters.alternatives.current(ALTERNATIVE_GROUP)
    result.tools = {tool: adapters.gateway.which(tool) for tool in USER_TOOLS}

    profile = ProfileMutator(context, adapters.filesystem, shell=config.shell)
    result.profile_path = profile.path
    result.helpers_installed = profile.has_helpers()

    return result
