"""
Status use case — phase completion and backup snapshots, read from disk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from devsetup.core.models.settings import Settings
from devsetup.core.persistence.backup_store import list_snapshots
from devsetup.core.persistence.state_file import StateStore
from devsetup.core.services.phases import PHASE_IDS


@dataclass
class StatusResult:
    """What earlier runs left behind."""

    state_file: Path | None = None
    log_file: Path | None = None
    backup_root: Path | None = None
    phases: dict[str, bool] = field(default_factory=dict)
    unknown: dict[str, str] = field(default_factory=dict)
    snapshots: list[str] = field(default_factory=list)

    @property
    def completed(self) -> int:
        return sum(1 for done in self.phases.values() if done)

    @property
    def next_phase(self) -> str | None:
        for phase_id, done in self.phases.items():
            if not done:
                return phase_id
        return None

    def to_dict(self) -> dict:
        return {
            "state_file": str(self.state_file) if self.state_file else None,
            "log_file": str(self.log_file) if self.log_file else None,
            "backup_root": str(self.backup_root) if self.backup_root else None,
            "phases": dict(self.phases),
            "completed": self.completed,
            "next_phase": self.next_phase,
            "unknown_entries": dict(self.unknown),
            "snapshots": list(self.snapshots),
        }


def get_status(settings: Settings, home: Path) -> StatusResult:
    paths = settings.resolve(home)
    store = StateStore(paths.state_file, read_only=True)
    state = store.load()

    return StatusResult(
        state_file=paths.state_file,
        log_file=paths.log_file,
        backup_root=paths.backup_root,
        phases={pid: store.is_complete(pid) for pid in PHASE_IDS},
        unknown={k: v for k, v in state.items() if k not in PHASE_IDS},
        snapshots=[p.name for p in list_snapshots(paths.backup_root)],
    )


def reset_phases(
    settings: Settings,
    home: Path,
    phase_ids: list[str] | None = None,
) -> list[str]:
    """Forget completion so the next setup re-runs those phases.

    ``None`` clears every phase. Returns the IDs actually removed.
    """
    store = StateStore(settings.resolve(home).state_file)
    store.load()
    return store.reset(phase_ids)
