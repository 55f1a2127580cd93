"""
devsetup — CLI entrypoint.

Usage:
    devsetup --help
    devsetup setup --dry-run
    devsetup rollback --force
    devsetup validate --json
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from devsetup import __version__
from devsetup.ui.cli.common import configure_logging, load_settings_or_exit


def _home() -> Path:
    override = os.environ.get("DEVSETUP_HOME")
    return Path(override).expanduser() if override else Path.home()


@click.group()
@click.version_option(version=__version__, prog_name="devsetup")
@click.option("--verbose", "-v", is_flag=True, help="Show every step on the console.")
@click.option("--quiet", "-q", is_flag=True, help="Only show errors on the console.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="Path to config.yml (default: ~/.config/devsetup/config.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """devsetup — provision a macOS development workstation."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["home"] = _home()

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    else:
        level = os.environ.get("DEVSETUP_LOG_LEVEL", "INFO")
    ctx.obj["log_level"] = level
    ctx.obj["console_level"] = "ERROR" if quiet else ("DEBUG" if verbose or debug else None)
    configure_logging(ctx)


@cli.command()
@click.option("--dry-run", is_flag=True, help="Log every action without changing anything.")
@click.pass_context
def setup(ctx: click.Context, dry_run: bool) -> None:
    """Run the provisioning phases, resuming after the last completed one."""
    from devsetup.core.use_cases.setup import run_setup

    settings = load_settings_or_exit(ctx)
    home: Path = ctx.obj["home"]
    configure_logging(ctx, log_file=settings.resolve(home).log_file)

    if dry_run:
        click.secho("🔍 Running in dry-run mode - no changes will be made.", fg="cyan")

    result = run_setup(settings, home, dry_run=dry_run)

    if result.ok:
        click.secho("✅ Setup complete", fg="green", bold=True)
        if result.report and result.report.skipped:
            click.echo(f"   Already complete: {', '.join(result.report.skipped)}")
    elif result.failed_phase:
        click.secho(f"❌ Setup failed at phase '{result.failed_phase}'", fg="red", bold=True)
        click.echo("   Fix the problem and re-run; completed phases will be skipped.")
    else:
        click.secho(f"❌ Setup failed: {result.error}", fg="red", bold=True)
    sys.exit(result.exit_code)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show phase completion and available backup snapshots."""
    from devsetup.core.use_cases.status import get_status

    settings = load_settings_or_exit(ctx)
    result = get_status(settings, ctx.obj["home"])

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    click.secho(f"\n📋 Phases ({result.completed}/{len(result.phases)} complete)", fg="cyan", bold=True)
    for phase_id, done in result.phases.items():
        if done:
            click.secho(f"     ✓ {phase_id}", fg="green")
        else:
            click.echo(f"     • {phase_id}")
    if result.next_phase:
        click.echo(f"   Next: {result.next_phase}")

    click.echo()
    click.secho(f"   Snapshots: {len(result.snapshots)}", fg="white", bold=True)
    for name in result.snapshots:
        click.echo(f"     • {name}")
    click.echo()


from devsetup.ui.cli.rollback import rollback
from devsetup.ui.cli.state import state
from devsetup.ui.cli.update import update
from devsetup.ui.cli.validate import validate

cli.add_command(rollback)
cli.add_command(validate)
cli.add_command(update)
cli.add_command(state)


if __name__ == "__main__":
    cli()
