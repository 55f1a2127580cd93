"""
CLI command for validation.

Thin wrapper over ``devsetup.core.use_cases.validate``.
"""

from __future__ import annotations

import json
import sys

import click

from devsetup.ui.cli.common import load_settings_or_exit


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def validate(ctx: click.Context, as_json: bool) -> None:
    """Check that every tool and file setup installs is present.

    Exits 1 when anything is missing. Changes nothing.
    """
    from devsetup.core.use_cases.validate import run_validation

    settings = load_settings_or_exit(ctx)
    report = run_validation(settings, ctx.obj["home"])

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        sys.exit(0 if report.ok else 1)

    click.secho("🔍 Validating dev environment installation...", fg="cyan")
    for check in report.checks:
        detail = f" ({check.detail})" if check.detail else ""
        if check.present:
            click.secho(f"   ✅ {check.name}{detail} detected.", fg="green")
        else:
            click.secho(f"   ❌ {check.name} is missing.", fg="red")

    click.echo()
    if report.ok:
        click.secho("🔎 Validation complete: everything is in place.", fg="green", bold=True)
    else:
        click.secho(f"🔎 Validation complete: {len(report.missing)} item(s) missing.", fg="red", bold=True)
        sys.exit(1)
