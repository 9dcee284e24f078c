"""
phpstack — CLI entrypoint.

Usage:
    sudo phpstack install
    phpstack status
    phpstack config check
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from phpstack import __version__
from phpstack.core.context import ProvisionContext, build_context
from phpstack.core.errors import ProvisionError
from phpstack.core.models.step import StepOutcome
from phpstack.core.observability.logging_config import configure_from_cli


def _context() -> ProvisionContext:
    """Build the provisioning context from this process, or exit 1."""
    try:
        return build_context(os.environ, os.geteuid())
    except ProvisionError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="phpstack")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to phpstack.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """phpstack — provision multiple PHP versions and tooling for one user."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    configure_from_cli(debug=debug, verbose=verbose, quiet=quiet, environ=os.environ)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, as_json: bool) -> None:
    """Install PHP runtimes, Composer, framework CLIs and shell helpers."""
    from phpstack.core.use_cases.install import run_install

    result = run_install(_context(), config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    report = result.report
    if report is not None and not ctx.obj.get("quiet", False):
        click.echo()
        click.secho("   Summary:", fg="white", bold=True)
        click.echo(f"     ✓ {report.succeeded} succeeded")
        click.echo(f"     ⊘ {report.skipped} already present")
        if report.warnings:
            click.secho(f"     ⚠ {report.warnings} warning(s)", fg="yellow")
            for record in report.records:
                if record.outcome == StepOutcome.FAILED_NONFATAL:
                    click.echo(f"       • {record.name}: {record.message}")
        click.echo()

    message = result.final_message
    if result.exit_code != 0:
        click.secho(f"❌ {message}", fg="red")
        sys.exit(1)

    click.secho("✅ PHP development environment installation complete", fg="green", bold=True)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show installed PHP versions, tools and profile state."""
    from phpstack.adapters.registry import default_adapters
    from phpstack.adapters.shell.command import CommandGateway
    from phpstack.core.config.loader import load_config
    from phpstack.core.use_cases.status import get_status

    context = _context()
    try:
        config = load_config(ctx.obj.get("config_path"))
    except ProvisionError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    result = get_status(context, config, default_adapters(CommandGateway(context)))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"\n📋 {result.username}", fg="cyan", bold=True)
    click.echo(f"   Home: {result.home}")
    click.echo(f"   Elevated: {'yes' if result.elevated else 'no'}")
    click.echo()

    click.secho("   PHP runtimes:", fg="white", bold=True)
    for runtime in result.runtimes:
        if runtime.packages_installed and runtime.binary:
            click.secho(f"     ✓ {runtime.version}", fg="green")
        else:
            missing = len(runtime.missing_packages)
            click.secho(f"     ✗ {runtime.version} ({missing} package(s) missing)", fg="red")
    click.echo(f"   Current php: {result.current_php or '—'}")
    click.echo()

    click.secho("   Tools:", fg="white", bold=True)
    for tool, location in result.tools.items():
        marker = "✓" if location else "✗"
        click.echo(f"     {marker} {tool}  {location or ''}")
    click.echo()

    helpers = "installed" if result.helpers_installed else "missing"
    click.echo(f"   Helpers in {result.profile_path}: {helpers}")
    click.echo()


@cli.group()
def config() -> None:
    """Provisioning configuration commands."""


@config.command("check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def config_check(ctx: click.Context, as_json: bool) -> None:
    """Validate phpstack.yml configuration."""
    from phpstack.core.use_cases.config_check import check_config

    result = check_config(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.config is not None  # guaranteed when valid
        click.secho("✅ Configuration is valid", fg="green", bold=True)
        click.echo(f"   PHP versions: {' '.join(result.config.php_versions)}")
        click.echo(f"   Extensions: {len(result.config.php_extensions)}")
        click.echo(f"   Shell: {result.config.shell}")
    else:
        click.secho("❌ Configuration errors:", fg="red", bold=True)
        for err in result.errors:
            click.echo(f"   • {err}")

    if result.warnings:
        click.echo()
        click.secho("⚠️  Warnings:", fg="yellow")
        for warn in result.warnings:
            click.echo(f"   • {warn}")

    if not result.valid:
        click.echo()
        sys.exit(1)

    click.echo()


def main() -> None:
    """Entry point for ``python -m phpstack.main``."""
    cli(obj={})


if __name__ == "__main__":
    main()
