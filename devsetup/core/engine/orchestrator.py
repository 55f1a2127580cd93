"""
Phase orchestrator — run phases in order, skipping completed ones.

Flow per phase:
    complete in state?  → COMPLETE (skipped, body not called)
    otherwise           → RUNNING → body(ctx) → mark complete → COMPLETE
    body raises         → FAILED, stop, raise PhaseFailed

Only a phase whose body returned normally is ever recorded, so an
interrupted run resumes at the first unfinished phase.
"""

from __future__ import annotations

import logging
from typing import Sequence

from devsetup.core.errors import PhaseFailed, SetupInterrupted
from devsetup.core.models.phase import OrchestratorReport, Phase, PhaseContext, PhaseStatus
from devsetup.core.persistence.state_file import StateStore

logger = logging.getLogger(__name__)


class PhaseOrchestrator:
    """Drives a fixed, ordered list of phases against a state store."""

    def __init__(self, store: StateStore, phases: Sequence[Phase]):
        ids = [p.phase_id for p in phases]
        if len(set(ids)) != len(ids):
            raise ValueError(f"Duplicate phase IDs: {ids}")
        self._store = store
        self._phases = list(phases)
        self.report = OrchestratorReport(
            statuses={p.phase_id: PhaseStatus.PENDING for p in self._phases}
        )

    @property
    def phases(self) -> list[Phase]:
        return list(self._phases)

    def run(self, ctx: PhaseContext) -> OrchestratorReport:
        """Execute every phase not yet complete.

        Raises:
            PhaseFailed: a phase body raised. Later phases stay PENDING.
        """
        report = self.report
        for phase in self._phases:
            pid = phase.phase_id

            if self._store.is_complete(pid):
                logger.info("Skipping phase '%s' (already completed)", pid)
                report.statuses[pid] = PhaseStatus.COMPLETE
                report.skipped.append(pid)
                continue

            logger.info("Starting phase: %s", phase.label)
            report.statuses[pid] = PhaseStatus.RUNNING
            try:
                phase.body(ctx)
            except SetupInterrupted as e:
                report.statuses[pid] = PhaseStatus.FAILED
                report.failed_phase = pid
                e.phase_id = e.phase_id or pid
                raise
            except Exception as e:
                report.statuses[pid] = PhaseStatus.FAILED
                report.failed_phase = pid
                logger.error("Phase '%s' failed: %s", pid, e)
                raise PhaseFailed(pid, e) from e
            except BaseException:
                # KeyboardInterrupt leaves the phase unrecorded too
                report.statuses[pid] = PhaseStatus.FAILED
                report.failed_phase = pid
                raise

            self._store.mark_complete(pid)
            report.statuses[pid] = PhaseStatus.COMPLETE
            report.ran.append(pid)
            logger.info("Completed phase: %s", pid)

        return report
