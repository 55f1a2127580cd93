"""
CLI command for updating installed components.

Thin wrapper over ``devsetup.core.use_cases.update``.
"""

from __future__ import annotations

import json
import sys

import click

from devsetup.ui.cli.common import load_settings_or_exit, print_steps


@click.command()
@click.option("--dry-run", is_flag=True, help="Log every action without changing anything.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(ctx: click.Context, dry_run: bool, as_json: bool) -> None:
    """Upgrade Homebrew packages, Node.js, Python, dotfiles and Oh My Zsh."""
    from devsetup.core.use_cases.update import run_update

    settings = load_settings_or_exit(ctx)
    report = run_update(settings, ctx.obj["home"], dry_run=dry_run)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.secho("🔄 Update of dev environment components", fg="cyan", bold=True)
        print_steps(report)
        click.echo()
        if report.ok:
            click.secho("✅ Update complete. Restart your terminal for all changes to take effect.", fg="green")
        else:
            click.secho(f"⚠️  Update finished with {len(report.failed)} failed step(s).", fg="yellow")

    sys.exit(0 if report.ok else 1)
