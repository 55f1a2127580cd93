"""
dotfiles — clone the user's dotfiles repository and link its files.

An empty repository setting (or ``skip``) turns this phase into a
no-op that still completes.
"""

from __future__ import annotations

import logging

from devsetup.core.models.phase import PhaseContext

logger = logging.getLogger(__name__)


def sync_repository(ctx: PhaseContext) -> bool:
    """Clone or fast-forward the repository. False when unavailable."""
    gw = ctx.gateway
    repo = ctx.settings.dotfiles_repo
    target = ctx.paths.dotfiles_dir

    if (target / ".git").is_dir():
        logger.info("Dotfiles repository already exists; pulling latest changes")
        receipt = gw.run(["git", "-C", str(target), "pull", "--ff-only"], check=False)
        if receipt.failed:
            logger.warning("Could not update %s: %s", target, receipt.error)
        return True

    receipt = gw.run(["git", "clone", repo, str(target)], check=False)
    if receipt.failed:
        logger.warning("Failed to clone dotfiles repository; skipping dotfiles installation")
        return False
    return True


def link_dotfiles(ctx: PhaseContext) -> None:
    settings = ctx.settings
    if not settings.dotfiles_enabled:
        logger.info("Skipping dotfiles installation (no repository configured)")
        return

    logger.info("Installing dotfiles from %s", settings.dotfiles_repo)
    if not sync_repository(ctx):
        return

    for name in settings.linked_dotfiles:
        source = ctx.paths.dotfiles_dir / name
        if not source.is_file():
            continue
        link = ctx.paths.home / name
        if link.is_symlink() and link.resolve() == source.resolve():
            logger.info("%s already linked", name)
            continue
        ctx.backups.backup(link)
        ctx.gateway.symlink(link, source)
        logger.info("Linked %s from dotfiles repository", name)
