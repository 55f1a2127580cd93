"""
Setup use case — provision the machine, phase by phase.

The full vertical slice: preflight, state load, the seven phases,
and the unconditional cleanup. Every outcome is reported through
``SetupResult.exit_code``; nothing escapes as an exception.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence

from devsetup import __version__
from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.engine.lifecycle import RunLifecycle
from devsetup.core.engine.orchestrator import PhaseOrchestrator
from devsetup.core.models.phase import OrchestratorReport, Phase, PhaseContext
from devsetup.core.models.settings import Settings
from devsetup.core.persistence.backup_store import BackupStore
from devsetup.core.persistence.state_file import StateStore
from devsetup.core.prompts import ClickPrompter, Prompter
from devsetup.core.services.phases import build_phases
from devsetup.core.services.preflight import check_preconditions

logger = logging.getLogger(__name__)


@dataclass
class SetupResult:
    """Outcome of one setup run."""

    exit_code: int = 1
    dry_run: bool = False
    report: OrchestratorReport | None = None
    failed_phase: str | None = None
    snapshot: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    def to_dict(self) -> dict:
        return {
            "exit_code": self.exit_code,
            "dry_run": self.dry_run,
            "failed_phase": self.failed_phase,
            "snapshot": str(self.snapshot) if self.snapshot else None,
            "error": self.error,
            "report": self.report.to_dict() if self.report else None,
        }


def run_setup(
    settings: Settings,
    home: Path,
    *,
    dry_run: bool = False,
    prompter: Prompter | None = None,
    registry: AdapterRegistry | None = None,
    phases: Sequence[Phase] | None = None,
    preflight: Callable[[Settings, Path], None] = check_preconditions,
    install_signal_handlers: bool = True,
) -> SetupResult:
    """Run every phase not yet recorded as complete.

    Args:
        settings: Loaded configuration.
        home: Home directory to provision.
        dry_run: Log every action without performing any.
        prompter: Source of interactive answers (default: terminal).
        registry: Adapter registry (default: all production adapters).
        phases: Phase list override (default: the seven standard phases).
        preflight: Host check run before any phase.
        install_signal_handlers: Route SIGINT/SIGTERM through cleanup.
    """
    paths = settings.resolve(home)
    gateway = ExecutionGateway(registry or default_registry(), dry_run=dry_run)
    store = StateStore(paths.state_file, read_only=dry_run)
    backups = BackupStore(paths.backup_root, home, dry_run=dry_run)
    orchestrator = PhaseOrchestrator(store, phases if phases is not None else build_phases())
    ctx = PhaseContext(
        gateway=gateway,
        backups=backups,
        settings=settings,
        paths=paths,
        prompter=prompter or ClickPrompter(),
    )

    result = SetupResult(dry_run=dry_run)
    with RunLifecycle(gateway, settings, paths, install_signal_handlers) as run:
        if dry_run:
            logger.info("Running in dry-run mode - no changes will be made.")
        logger.info("Starting devsetup v%s", __version__)
        logger.info("Log will be saved to %s", paths.log_file)
        preflight(settings, home)
        store.load()
        orchestrator.run(ctx)

    result.exit_code = run.exit_code
    result.report = orchestrator.report
    result.failed_phase = run.failed_phase
    result.snapshot = backups.snapshot_dir
    if run.error is not None:
        result.error = str(run.error) or type(run.error).__name__
    return result
