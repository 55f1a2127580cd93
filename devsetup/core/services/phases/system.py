"""system_configuration — final tweaks (default browser)."""

from __future__ import annotations

import logging

from devsetup.core.models.phase import PhaseContext

logger = logging.getLogger(__name__)


def configure_system(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    if not gw.which("defaultbrowser"):
        logger.info("Installing defaultbrowser CLI tool via Homebrew...")
        gw.run(["brew", "install", "defaultbrowser"], timeout=None)

    browser = ctx.settings.default_browser
    logger.info("Setting %s as the default browser...", browser)
    gw.run(["defaultbrowser", browser])
