"""
applications — download disk images and install the GUI apps in them.

A failed download or install is logged and the next application is
tried. Once every application has been attempted, any failure fails the
phase, so a resumed run retries the ones still missing.
"""

from __future__ import annotations

import logging

from devsetup.core.errors import PhaseError
from devsetup.core.models.phase import PhaseContext
from devsetup.core.models.settings import Application

logger = logging.getLogger(__name__)

RECOMMENDATIONS = [
    "Windsurf: https://windsurf.dev",
    "Docker Desktop: https://www.docker.com/products/docker-desktop",
]


def install_application(ctx: PhaseContext, app: Application) -> bool:
    gw = ctx.gateway
    installed = ctx.paths.applications_dir / f"{app.bundle}.app"
    if installed.is_dir():
        logger.info("%s is already installed. Skipping.", app.bundle)
        return True

    image = ctx.paths.downloads / app.image
    logger.info("Downloading %s...", app.name)
    receipt = gw.run(
        ["curl", "-L", "--fail", "--progress-bar", "-o", str(image), app.url],
        check=False,
        timeout=None,
        description=f"download {app.url} -> {image}",
    )
    if receipt.failed:
        logger.warning("Failed to download %s from %s", app.name, app.url)
        return False

    logger.info("Installing %s...", app.name)
    receipt = gw.install_app(image, app.bundle, ctx.paths.applications_dir, check=False)
    if receipt.failed:
        logger.error("Failed to install %s: %s", app.name, receipt.error)
        return False
    return True


def install_applications(ctx: PhaseContext) -> None:
    logger.info("Downloading GUI applications to %s...", ctx.paths.downloads)
    ctx.gateway.make_dirs(ctx.paths.downloads)

    failed = [app.name for app in ctx.settings.applications if not install_application(ctx, app)]

    logger.info("Additional recommended downloads: %s", "; ".join(RECOMMENDATIONS))
    if failed:
        raise PhaseError(f"Could not install: {', '.join(failed)}")
