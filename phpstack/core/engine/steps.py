"""
Installer steps — each one a precondition check plus an action.

Every step is safe to re-run: it first inspects the system and returns
``skipped-already-present`` when there is nothing to do.  Steps report
through StepRecords; the failure policy lives in the outcome they pick:

    - failed-fatal:     later steps depend on this one (system bootstrap,
                        Composer, shell helpers)
    - failed-nonfatal:  additive convenience (one PHP version, alternatives,
                        a framework CLI)

``PrivilegeError`` is never caught here; it always aborts the run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from phpstack.adapters.registry import SystemAdapters
from phpstack.core.context import ProvisionContext
from phpstack.core.errors import (
    CommandError,
    DownloadError,
    PackageManagerError,
    ProfileMutationError,
)
from phpstack.core.models.config import ProvisionConfig
from phpstack.core.models.step import StepRecord
from phpstack.core.models.unit import package_units, runtime_units
from phpstack.core.services.downloads import download, fetch_text, verify_checksum
from phpstack.core.services.php_ini import ensure_ini_settings
from phpstack.core.services.profile import ProfileChange, ProfileMutator

logger = logging.getLogger(__name__)

PHP_ROOT = Path("/etc/php")
BIN_DIR = Path("/usr/bin")
ALTERNATIVE_LINK = Path("/usr/bin/php")
ALTERNATIVE_GROUP = "php"

COMPOSER_BIN_ENTRY = "$HOME/.config/composer/vendor/bin"
COMPOSER_BIN_FRAGMENT = "composer/vendor/bin"
LOCAL_BIN_ENTRY = "$HOME/.local/bin"
LOCAL_BIN_FRAGMENT = ".local/bin"


@dataclass
class StepEnvironment:
    """Everything a step may touch, constructed once per run."""

    context: ProvisionContext
    config: ProvisionConfig
    adapters: SystemAdapters
    profile: ProfileMutator
    php_root: Path = PHP_ROOT
    bin_dir: Path = BIN_DIR
    alternative_link: Path = ALTERNATIVE_LINK

    def php_binary(self, version: str) -> Path:
        return self.bin_dir / f"php{version}"


def _stamp(record: StepRecord, start: float) -> StepRecord:
    record.duration_ms = int((time.monotonic() - start) * 1000)
    return record


# ── System bootstrap ───────────────────────────────────────────────


def bootstrap_system(env: StepEnvironment) -> list[StepRecord]:
    """Install prerequisites and register the PHP package repository."""
    name = "system-bootstrap"
    config = env.config
    pm = env.adapters.packages

    missing = pm.missing(package_units(config.system_packages))
    needs_repo = not pm.has_repository(config.repository_fragment)
    if not missing and not needs_repo:
        return [StepRecord.skip(name, "System dependencies and PHP repository present")]

    try:
        pm.refresh()
        if missing:
            pm.install(missing)
        if needs_repo:
            logger.info("Adding PHP PPA...")
            pm.add_repository(config.php_repository)
            pm.refresh()
    except PackageManagerError as e:
        return [StepRecord.failure(name, f"Failed to install system dependencies: {e}")]

    return [StepRecord.success(
        name,
        f"Installed {len(missing)} package(s)"
        + (f", added {config.php_repository}" if needs_repo else ""),
        metadata={
            "installed": [u.package_name for u in missing],
            "repository_added": needs_repo,
        },
    )]


# ── PHP runtime matrix ─────────────────────────────────────────────


@dataclass
class _RuntimeTweaks:
    changed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _configure_runtime(env: StepEnvironment, version: str) -> _RuntimeTweaks:
    """php.ini settings and FPM pool ownership for one version."""
    tweaks = _RuntimeTweaks()
    fs = env.adapters.filesystem

    for sapi in env.config.ini_sapis:
        ini = env.php_root / version / sapi / "php.ini"
        try:
            result = ensure_ini_settings(ini, env.config.ini_settings, fs)
        except OSError as e:
            tweaks.warnings.append(f"Cannot configure {ini}: {e}")
            continue
        if result.modified:
            tweaks.changed.append(str(ini))

    if env.config.fpm_pool_owned_by_user:
        pool_dir = env.php_root / version / "fpm" / "pool.d"
        if pool_dir.is_dir():
            try:
                fs.give_to_user(pool_dir, recursive=True)
            except OSError as e:
                tweaks.warnings.append(f"Cannot set ownership of {pool_dir}: {e}")

    return tweaks


def install_runtime(env: StepEnvironment, version: str) -> StepRecord:
    """Install one PHP version with its extensions, then configure it."""
    start = time.monotonic()
    name = f"php-{version}"
    pm = env.adapters.packages

    missing = pm.missing(runtime_units(version, env.config.php_extensions))
    if missing:
        logger.info("Installing PHP %s...", version)
        try:
            pm.install(missing)
        except PackageManagerError as e:
            logger.error("Failed to install PHP %s", version)
            return _stamp(StepRecord.warning(name, str(e), metadata={"version": version}), start)

    tweaks = _configure_runtime(env, version)

    if missing or tweaks.changed:
        service = f"php{version}-fpm"
        try:
            if env.adapters.services.is_active(service):
                env.adapters.services.restart_service(service)
        except CommandError as e:
            tweaks.warnings.append(f"Cannot restart {service}: {e}")

    for warning in tweaks.warnings:
        logger.warning(warning)

    metadata = {
        "version": version,
        "installed": [u.package_name for u in missing],
        "configured": tweaks.changed,
        "warnings": tweaks.warnings,
    }
    if not missing and not tweaks.changed:
        record = StepRecord.skip(name, f"PHP {version} already installed", metadata=metadata)
    else:
        record = StepRecord.success(name, f"PHP {version} installed", metadata=metadata)
    return _stamp(record, start)


def install_runtimes(env: StepEnvironment) -> list[StepRecord]:
    """The runtime matrix; one failed version never stops the next."""
    return [install_runtime(env, version) for version in env.config.php_versions]


# ── Alternatives ───────────────────────────────────────────────────


def _priority(version: str) -> int:
    return int(version.replace(".", ""))


def configure_alternatives(env: StepEnvironment) -> list[StepRecord]:
    """Register every installed ``phpX.Y`` under the ``php`` alternative."""
    name = "alternatives"
    alts = env.adapters.alternatives

    desired = {
        str(env.php_binary(v)): _priority(v)
        for v in env.config.php_versions
        if env.php_binary(v).is_file()
    }
    if not desired:
        return [StepRecord.warning(name, "No PHP binaries found to register")]

    default_target: Path | None = None
    if env.config.default_version:
        default_target = env.php_binary(env.config.default_version)
        if str(default_target) not in desired:
            logger.warning("Default PHP %s is not installed", env.config.default_version)
            default_target = None

    registered_ok = alts.registered(ALTERNATIVE_GROUP) == desired
    default_ok = default_target is None or alts.current(ALTERNATIVE_GROUP) == str(default_target)
    if registered_ok and default_ok:
        return [StepRecord.skip(name, "PHP alternatives already registered")]

    logger.info("Configuring update-alternatives...")
    try:
        if not registered_ok:
            alts.reset(ALTERNATIVE_GROUP)
            for target, priority in desired.items():
                alts.register(env.alternative_link, ALTERNATIVE_GROUP, Path(target), priority)
        if default_target is not None:
            alts.set_default(ALTERNATIVE_GROUP, default_target)
    except CommandError as e:
        return [StepRecord.warning(name, f"Failed to configure alternatives: {e}")]

    return [StepRecord.success(
        name,
        f"Registered {len(desired)} PHP binaries",
        metadata={"registered": desired, "default": str(default_target or "")},
    )]


# ── Composer ───────────────────────────────────────────────────────


def install_composer(env: StepEnvironment) -> list[StepRecord]:
    """Install Composer into the user's ``~/.local/bin``, as that user."""
    name = "composer"
    gw = env.adapters.gateway
    fs = env.adapters.filesystem
    identity = env.context.identity

    if gw.which("composer"):
        logger.info("Composer already installed")
        env.profile.ensure_path_entry(LOCAL_BIN_ENTRY, LOCAL_BIN_FRAGMENT)
        return [StepRecord.skip(name, "Composer already installed")]

    php = gw.which("php")
    if php is None:
        return [StepRecord.failure(name, "No PHP interpreter available to run the Composer installer")]

    logger.info("Installing Composer...")
    target = identity.local_bin / "composer"
    try:
        fs.make_user_dirs(identity.local_bin)
        with fs.user_tempdir() as tmp:
            installer = download(gw, env.config.composer_installer_url, tmp / "composer-setup.php")
            signature = fetch_text(gw, env.config.composer_signature_url)
            verify_checksum(installer, signature, "sha384")
            gw.run(
                [php, installer, f"--install-dir={identity.local_bin}", "--filename=composer"],
                cwd=tmp,
                check=True,
            )
        fs.give_to_user(target)

        for key, value in env.config.composer_global_config.items():
            gw.run([target, "config", "-g", key, value], check=True)
        fs.give_to_user(identity.composer_home, recursive=True)

        env.profile.ensure_path_entry(LOCAL_BIN_ENTRY, LOCAL_BIN_FRAGMENT)
    except (CommandError, DownloadError, OSError) as e:
        return [StepRecord.failure(name, f"Failed to install Composer: {e}")]

    return [StepRecord.success(name, f"Composer installed to {target}")]


# ── Framework CLIs ─────────────────────────────────────────────────


def install_laravel(env: StepEnvironment) -> list[StepRecord]:
    """``composer global require laravel/installer`` as the user."""
    name = "laravel"
    gw = env.adapters.gateway

    if gw.which("laravel"):
        env.profile.ensure_path_entry(COMPOSER_BIN_ENTRY, COMPOSER_BIN_FRAGMENT)
        return [StepRecord.skip(name, "Laravel installer already installed")]

    composer = gw.which("composer")
    if composer is None:
        return [StepRecord.warning(name, "Composer not available; Laravel installer skipped")]

    logger.info("Installing Laravel installer...")
    try:
        gw.run([composer, "global", "require", "laravel/installer"], check=True)
        env.adapters.filesystem.give_to_user(env.context.identity.composer_home, recursive=True)
        env.profile.ensure_path_entry(COMPOSER_BIN_ENTRY, COMPOSER_BIN_FRAGMENT)
    except (CommandError, OSError) as e:
        return [StepRecord.warning(name, f"Failed to install Laravel installer: {e}")]

    return [StepRecord.success(name, "Laravel installer installed")]


def install_symfony(env: StepEnvironment) -> list[StepRecord]:
    """Run the Symfony CLI installer into ``~/.local/bin`` as the user."""
    name = "symfony"
    gw = env.adapters.gateway
    fs = env.adapters.filesystem
    identity = env.context.identity

    if gw.which("symfony"):
        logger.info("Symfony CLI already installed")
        env.profile.ensure_path_entry(LOCAL_BIN_ENTRY, LOCAL_BIN_FRAGMENT)
        return [StepRecord.skip(name, "Symfony CLI already installed")]

    logger.info("Installing Symfony CLI...")
    target = identity.local_bin / "symfony"
    try:
        fs.make_user_dirs(identity.local_bin)
        with fs.user_tempdir() as tmp:
            installer = download(gw, env.config.symfony_installer_url, tmp / "symfony_installer")
            installer.chmod(0o755)
            gw.run(
                ["bash", installer, f"--install-dir={identity.local_bin}"],
                cwd=tmp,
                check=True,
            )
        if target.exists():
            target.chmod(0o755)
        fs.give_to_user(target)
        env.profile.ensure_path_entry(LOCAL_BIN_ENTRY, LOCAL_BIN_FRAGMENT)
    except (CommandError, DownloadError, OSError) as e:
        return [StepRecord.warning(name, f"Failed to install Symfony CLI: {e}")]

    logger.info("Symfony CLI installed successfully")
    return [StepRecord.success(name, f"Symfony CLI installed to {target}")]


# ── Shell helpers ──────────────────────────────────────────────────


def install_shell_helpers(env: StepEnvironment) -> list[StepRecord]:
    """Append the helper-function block to the user's profile."""
    name = "shell-helpers"
    try:
        change = env.profile.install_helpers()
    except (ProfileMutationError, OSError) as e:
        return [StepRecord.failure(name, str(e))]

    if change == ProfileChange.ALREADY_PRESENT:
        return [StepRecord.skip(name, f"Helper functions already in {env.profile.path}")]
    return [StepRecord.success(name, f"Helper functions added to {env.profile.path}")]
