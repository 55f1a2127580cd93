"""
Phase model — a named, ordered unit of provisioning work.

A phase body receives a ``PhaseContext`` and returns nothing on
success. Any exception it raises marks the phase FAILED and aborts
the run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from devsetup.core.engine.gateway import ExecutionGateway
    from devsetup.core.models.settings import SetupPaths, Settings
    from devsetup.core.persistence.backup_store import BackupStore
    from devsetup.core.prompts import Prompter


COMPLETE = "complete"


class PhaseStatus(str, Enum):
    """Lifecycle of a phase within one run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE = COMPLETE
    FAILED = "failed"


@dataclass
class PhaseContext:
    """Everything a phase body may touch.

    Bodies reach the outside world only through ``gateway`` and
    ``backups``; both already know whether the run is a preview.
    """

    gateway: ExecutionGateway
    backups: BackupStore
    settings: Settings
    paths: SetupPaths
    prompter: Prompter


PhaseBody = Callable[[PhaseContext], None]


@dataclass(frozen=True)
class Phase:
    """A named unit of work with idempotent skip behavior."""

    phase_id: str
    body: PhaseBody
    title: str = ""

    @property
    def label(self) -> str:
        return f"{self.phase_id} ({self.title})" if self.title else self.phase_id


@dataclass
class OrchestratorReport:
    """What happened to each phase during one run."""

    statuses: dict[str, PhaseStatus] = field(default_factory=dict)
    ran: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed_phase: str | None = None

    @property
    def all_complete(self) -> bool:
        return bool(self.statuses) and all(
            s is PhaseStatus.COMPLETE for s in self.statuses.values()
        )

    def to_dict(self) -> dict:
        return {
            "statuses": {k: v.value for k, v in self.statuses.items()},
            "ran": list(self.ran),
            "skipped": list(self.skipped),
            "failed_phase": self.failed_phase,
        }
