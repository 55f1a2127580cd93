"""
Error taxonomy for a provisioning run.

Three families matter to the caller:

    - Precondition failures abort before any phase runs.
    - Phase failures abort the run at the current phase, leaving
      earlier phases recorded as complete (safe to resume).
    - Best-effort failures (rollback, update) are logged and skipped;
      they never surface as exceptions.

An interrupt is not an error: ``SetupInterrupted`` sits beside
``KeyboardInterrupt`` outside the ``Exception`` tree.

Adapters never raise. The gateway turns a failed receipt into an
``ExecutionError`` when the caller asked for a checked execution.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devsetup.core.models.action import Receipt


class SetupError(Exception):
    """Base class for every error raised by the provisioning core."""


class PreconditionError(SetupError):
    """The host cannot be provisioned (wrong platform, too little disk)."""


class BackupError(SetupError):
    """A file could not be protected before mutation."""


class PhaseError(SetupError):
    """A phase body found a requirement it cannot satisfy."""


class ExecutionError(SetupError):
    """An external effect reported failure."""

    def __init__(self, receipt: Receipt, description: str = ""):
        self.receipt = receipt
        self.description = description or receipt.action_id
        detail = receipt.error or "unknown error"
        super().__init__(f"{self.description}: {detail}")


class PhaseFailed(SetupError):
    """Raised by the orchestrator when a phase body fails."""

    def __init__(self, phase_id: str, cause: BaseException | None = None):
        self.phase_id = phase_id
        self.cause = cause
        message = f"Phase '{phase_id}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class SetupInterrupted(BaseException):
    """An interrupt or termination signal arrived during a run.

    Derives from BaseException, like KeyboardInterrupt, so that the
    ``except Exception`` guards in adapters and best-effort steps let it
    through to the orchestrator and the run lifecycle.
    """

    def __init__(self, signum: int, phase_id: str | None = None):
        self.signum = signum
        self.phase_id = phase_id
        super().__init__(f"Interrupted by signal {signum}")
