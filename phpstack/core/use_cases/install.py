"""
Install use case — provision the full PHP stack for the invoking user.

The vertical slice from CLI invocation to a finished report: load
config, check elevation, wire adapters, run the steps.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from phpstack.adapters.registry import SystemAdapters, default_adapters
from phpstack.adapters.shell.command import CommandGateway
from phpstack.core.config.loader import load_config
from phpstack.core.context import ProvisionContext
from phpstack.core.engine.executor import STEPS, ProvisionReport, Step, run_steps
from phpstack.core.engine.steps import StepEnvironment
from phpstack.core.errors import ConfigError
from phpstack.core.models.config import ProvisionConfig
from phpstack.core.services.profile import ProfileMutator

logger = logging.getLogger(__name__)

NOT_ELEVATED_MESSAGE = "This tool must be run as root or with sudo"


@dataclass
class InstallResult:
    """Result of a provisioning run."""

    report: ProvisionReport | None = None
    username: str = ""
    profile_path: Path | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error:
            return 1
        return self.report.exit_code if self.report else 1

    @property
    def final_message(self) -> str | None:
        """The message to print last: the pre-flight error or the last fatal step."""
        if self.error:
            return self.error
        if self.report and self.report.last_fatal:
            return self.report.last_fatal.message
        return None

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["user"] = self.username
        result["profile"] = str(self.profile_path) if self.profile_path else None
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def run_install(
    context: ProvisionContext,
    config: ProvisionConfig | None = None,
    config_path: Path | None = None,
    adapters: SystemAdapters | None = None,
    sequence: tuple[Step, ...] = STEPS,
    **env_overrides,
) -> InstallResult:
    """Provision the PHP stack.

    Args:
        context: Identity and elevation state, built once by the caller.
        config: Pre-loaded config.  Loaded from ``config_path`` (or the
            upward search / defaults) when None.
        config_path: Optional explicit path to phpstack.yml.
        adapters: Optional pre-built adapters (tests pass mocks).
        sequence: Steps to run, in order.
        **env_overrides: Extra ``StepEnvironment`` fields (``php_root``,
            ``bin_dir``) for tests.

    Returns:
        InstallResult with the provisioning report.
    """
    result = InstallResult(username=context.identity.username)

    if not context.elevation_held:
        logger.error(NOT_ELEVATED_MESSAGE)
        result.error = NOT_ELEVATED_MESSAGE
        return result

    # ── Load config ──────────────────────────────────────────────
    if config is None:
        try:
            config = load_config(config_path)
        except ConfigError as e:
            result.error = str(e)
            return result

    # ── Wire adapters ────────────────────────────────────────────
    if adapters is None:
        adapters = default_adapters(CommandGateway(context))

    profile = ProfileMutator(context, adapters.filesystem, shell=config.shell)
    result.profile_path = profile.path

    logger.info(
        "Provisioning PHP %s for %s (%s)",
        " ".join(config.php_versions),
        context.identity.username,
        context.identity.home,
    )

    env = StepEnvironment(
        context=context,
        config=config,
        adapters=adapters,
        profile=profile,
        **env_overrides,
    )
    result.report = run_steps(env, sequence)

    if result.report.exit_code == 0:
        logger.info("Restart your shell or run: source %s", profile.path)
    return result
