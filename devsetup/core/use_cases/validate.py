"""
Validate use case — report what is installed and what is missing.
"""

from __future__ import annotations

from pathlib import Path

from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.settings import Settings
from devsetup.core.services.validate import ValidationReport, Validator


def run_validation(
    settings: Settings,
    home: Path,
    registry: AdapterRegistry | None = None,
) -> ValidationReport:
    # Validation only queries, so a preview gateway is enough
    gateway = ExecutionGateway(registry or default_registry(), dry_run=True)
    return Validator(settings, settings.resolve(home), gateway).run()
