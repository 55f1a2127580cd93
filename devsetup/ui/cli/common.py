"""Helpers shared by every CLI command."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from devsetup.core.models.settings import Settings
from devsetup.core.observability.logging_config import setup_logging


def load_settings_or_exit(ctx: click.Context) -> Settings:
    """Load configuration for a command, exiting 1 on a config error."""
    from devsetup.core.config.loader import ConfigError, load_settings

    try:
        return load_settings(ctx.obj.get("config_path"), home=ctx.obj["home"])
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


def configure_logging(ctx: click.Context, log_file: Path | None = None) -> None:
    """(Re)configure logging, optionally adding the durable log file."""
    setup_logging(
        level=ctx.obj["log_level"],
        log_file=log_file,
        console_level=ctx.obj["console_level"],
    )


def print_steps(report) -> None:
    """Render a step report (rollback, update) as a short list."""
    colors = {"ok": "green", "declined": "white", "skipped": "white", "failed": "red"}
    for step in report.steps:
        click.echo(f"     {step.name}: ", nl=False)
        click.secho(step.outcome, fg=colors.get(step.outcome, "white"))
        if step.detail and step.outcome == "failed":
            click.echo(f"        {step.detail}")
