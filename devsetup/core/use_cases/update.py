"""
Update use case — refresh installed components in place.
"""

from __future__ import annotations

from pathlib import Path

from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.report import StepReport
from devsetup.core.models.settings import Settings
from devsetup.core.services.update import Updater


def run_update(
    settings: Settings,
    home: Path,
    *,
    dry_run: bool = False,
    registry: AdapterRegistry | None = None,
) -> StepReport:
    gateway = ExecutionGateway(registry or default_registry(), dry_run=dry_run)
    return Updater(settings, settings.resolve(home), gateway).run()
