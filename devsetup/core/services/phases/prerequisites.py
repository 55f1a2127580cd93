"""
system_prerequisites — Xcode Command Line Tools, Homebrew, Brewfile.
"""

from __future__ import annotations

import logging
import platform
from pathlib import Path

from devsetup.core.errors import PhaseError
from devsetup.core.models.phase import PhaseContext
from devsetup.core.models.settings import HOMEBREW_INSTALL_URL, Settings
from devsetup.core.services.phases.shell_profile import add_to_path_file

logger = logging.getLogger(__name__)

APPLE_SILICON_BREW = "/opt/homebrew/bin"


def render_brewfile(settings: Settings) -> str:
    lines = ["# Basic Brewfile generated by devsetup"]
    lines += [f'brew "{name}"' for name in settings.brew_formulae]
    lines.append("")
    lines += [f'cask "{name}"' for name in settings.brew_casks]
    return "\n".join(lines) + "\n"


def ensure_xcode_tools(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    if gw.query(["xcode-select", "-p"]).ok:
        logger.info("Xcode Command Line Tools already installed.")
        return

    logger.info("Installing Xcode Command Line Tools (a dialog may appear; click 'Install').")
    # Exits non-zero when an install is already pending; the poll decides
    gw.run(["xcode-select", "--install"], check=False)
    ready = gw.wait_until(
        ["xcode-select", "-p"],
        timeout=ctx.settings.xcode_timeout,
        interval=ctx.settings.poll_interval,
    )
    if not ready:
        raise PhaseError("Xcode Command Line Tools installation timed out.")
    logger.info("Xcode Command Line Tools installation complete!")


def ensure_homebrew(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    if gw.which("brew"):
        logger.info("Homebrew already installed.")
        return

    logger.info("Installing Homebrew (you may be prompted for your password).")
    script = ctx.paths.temp_file("brew_install.sh")
    gw.download(HOMEBREW_INSTALL_URL, script)
    gw.run(["/bin/bash", str(script)], interactive=True, timeout=None)

    if platform.machine() == "arm64":
        add_to_path_file(ctx, APPLE_SILICON_BREW, ctx.paths.home / ".zprofile")
        gw.export_path(APPLE_SILICON_BREW)
    logger.info("Homebrew installation complete!")


def install_bundle(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    brewfile: Path = ctx.paths.brewfile

    logger.info("Updating Homebrew...")
    gw.run(["brew", "update"], timeout=None)

    if brewfile.is_file():
        logger.info("Using Brewfile at %s", brewfile)
    else:
        logger.warning("Brewfile not found; creating a default Brewfile at %s", brewfile)
        gw.write_text(brewfile, render_brewfile(ctx.settings))

    gw.run(["brew", "bundle", f"--file={brewfile}"], timeout=None)


def provision_prerequisites(ctx: PhaseContext) -> None:
    ensure_xcode_tools(ctx)
    ensure_homebrew(ctx)
    install_bundle(ctx)
