"""
CLI command for rollback.

Thin wrapper over ``devsetup.core.use_cases.rollback``.
"""

from __future__ import annotations

import json
import sys

import click

from devsetup.ui.cli.common import load_settings_or_exit, print_steps


@click.command()
@click.option("--force", is_flag=True, help="Answer yes to every confirmation (Homebrew included).")
@click.option("--dry-run", is_flag=True, help="Log every removal without performing it.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def rollback(ctx: click.Context, force: bool, dry_run: bool, as_json: bool) -> None:
    """Restore the latest backup snapshot and remove installed artifacts.

    Every step asks for confirmation unless --force is given. Removing
    Homebrew removes every package it manages, not only those installed
    by setup, and is asked separately.

    Examples:

        devsetup rollback

        devsetup rollback --dry-run --force
    """
    from devsetup.core.use_cases.rollback import run_rollback

    settings = load_settings_or_exit(ctx)
    if not as_json:
        click.secho("🧨 Starting rollback of the development environment setup...", fg="yellow")

    report = run_rollback(settings, ctx.obj["home"], force=force, dry_run=dry_run)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        if report.snapshot:
            click.echo(f"   Snapshot: {report.snapshot}")
        print_steps(report)
        click.echo()
        if report.ok:
            click.secho("✅ Rollback complete. Please restart your terminal session.", fg="green")
        else:
            click.secho(f"⚠️  Rollback finished with {len(report.failed)} failed step(s).", fg="yellow")

    sys.exit(0 if report.ok else 1)
