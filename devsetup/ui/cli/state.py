"""
CLI commands for the phase state file.

Thin wrappers over ``devsetup.core.use_cases.status``.
"""

from __future__ import annotations

import sys

import click

from devsetup.ui.cli.common import load_settings_or_exit


@click.group()
def state() -> None:
    """Inspect or reset recorded phase completion."""


@state.command()
@click.argument("phases", nargs=-1)
@click.option("--all", "reset_all", is_flag=True, help="Forget every completed phase.")
@click.pass_context
def reset(ctx: click.Context, phases: tuple[str, ...], reset_all: bool) -> None:
    """Mark PHASES as not complete so the next setup re-runs them.

    Use this when something a completed phase installed was removed
    outside devsetup.

    Examples:

        devsetup state reset development_tools

        devsetup state reset --all
    """
    from devsetup.core.services.phases import PHASE_IDS
    from devsetup.core.use_cases.status import reset_phases

    if not phases and not reset_all:
        click.secho("❌ Name at least one phase, or pass --all.", fg="red", err=True)
        sys.exit(2)

    unknown = [p for p in phases if p not in PHASE_IDS]
    if unknown:
        click.secho(f"⚠️  Unknown phase(s): {', '.join(unknown)}", fg="yellow")
        click.echo(f"   Known phases: {', '.join(PHASE_IDS)}")

    settings = load_settings_or_exit(ctx)
    removed = reset_phases(settings, ctx.obj["home"], None if reset_all else list(phases))

    if removed:
        click.secho(f"✅ Reset: {', '.join(removed)}", fg="green")
    else:
        click.echo("Nothing to reset.")
