"""
Config check use case — validate phpstack.yml and report issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from phpstack.core.config.loader import find_config_file, load_config
from phpstack.core.errors import ConfigError
from phpstack.core.models.config import ProvisionConfig


@dataclass
class ConfigCheckResult:
    """Result of configuration validation."""

    valid: bool = False
    config: ProvisionConfig | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "php_versions": self.config.php_versions if self.config else [],
            "shell": self.config.shell if self.config else None,
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate provisioning configuration and report issues.

    Args:
        config_path: Optional explicit path to phpstack.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()

    if config_path is None:
        config_path = find_config_file()
    result.config_path = config_path

    try:
        config = load_config(config_path)
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    result.config = config
    result.valid = True

    if config_path is None:
        result.warnings.append("No phpstack.yml found; using built-in defaults.")

    # ── Semantic warnings ────────────────────────────────────────
    if config.default_version and config.default_version not in config.php_versions:
        result.warnings.append(
            f"default_version {config.default_version} is not in php_versions"
        )
    if "fpm" not in config.php_extensions:
        if "fpm" in config.ini_sapis:
            result.warnings.append("ini_sapis lists 'fpm' but the fpm extension is not installed")
        if config.fpm_pool_owned_by_user:
            result.warnings.append("fpm_pool_owned_by_user is set but fpm is not installed")
    if not config.php_versions:
        result.warnings.append("php_versions is empty; no runtimes will be installed")

    return result
