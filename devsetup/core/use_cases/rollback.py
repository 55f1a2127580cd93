"""
Rollback use case — wire the rollback procedure to its confirmations.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.settings import Settings
from devsetup.core.prompts import ClickPrompter, Confirm, always_yes
from devsetup.core.services.rollback import RollbackProcedure, RollbackReport

logger = logging.getLogger(__name__)


def run_rollback(
    settings: Settings,
    home: Path,
    *,
    force: bool = False,
    dry_run: bool = False,
    confirm: Confirm | None = None,
    confirm_homebrew: Confirm | None = None,
    registry: AdapterRegistry | None = None,
) -> RollbackReport:
    """Undo what setup left behind.

    ``force`` answers every confirmation (Homebrew included) with yes.
    """
    if force:
        confirm = confirm_homebrew = always_yes
    else:
        prompter = ClickPrompter()
        confirm = confirm or (lambda message: prompter.confirm(message, default=False))
        confirm_homebrew = confirm_homebrew or confirm

    if dry_run:
        logger.info("Running rollback in dry-run mode - no changes will be made.")

    gateway = ExecutionGateway(registry or default_registry(), dry_run=dry_run)
    procedure = RollbackProcedure(
        settings,
        settings.resolve(home),
        gateway,
        confirm=confirm,
        confirm_homebrew=confirm_homebrew,
    )
    return procedure.run()
