"""
State file persistence — which phases have completed.

The file holds one ``phase_id=status`` line per phase. It is loaded
once at the start of a run and rewritten in full (temp file in the
same directory, then rename) every time a phase completes, so a crash
mid-write leaves either the old or the new mapping, never a torn one.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from devsetup.core.models.phase import COMPLETE

logger = logging.getLogger(__name__)


def parse_state(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines, skipping anything malformed."""
    state: dict[str, str] = {}
    for line_num, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        key, sep, value = line.partition("=")
        key, value = key.strip(), value.strip()
        if not sep or not key or not value:
            logger.debug("Ignoring malformed state line %d: %r", line_num, raw)
            continue
        state[key] = value
    return state


def render_state(state: dict[str, str]) -> str:
    return "".join(f"{key}={value}\n" for key, value in state.items())


class StateStore:
    """Durable phase-completion record.

    In read-only mode (preview runs) mutations update the in-memory
    mapping and are logged, but the file is never touched.
    """

    def __init__(self, path: Path, read_only: bool = False):
        self._path = Path(path)
        self._read_only = read_only
        self._state: dict[str, str] = {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def read_only(self) -> bool:
        return self._read_only

    def load(self) -> dict[str, str]:
        """Read the state file. A missing file is an empty record."""
        if not self._path.is_file():
            logger.debug("No state file at %s, starting fresh", self._path)
            self._state = {}
            return {}

        self._state = parse_state(self._path.read_text(encoding="utf-8"))
        logger.info("Loaded installation state from %s", self._path)
        return dict(self._state)

    def is_complete(self, phase_id: str) -> bool:
        return self._state.get(phase_id) == COMPLETE

    def mark_complete(self, phase_id: str) -> None:
        self._state[phase_id] = COMPLETE
        if self._read_only:
            logger.info("[DRY-RUN] Would record completion of phase '%s'", phase_id)
            return
        self._save()
        logger.info("Recorded completion of phase '%s' in %s", phase_id, self._path)

    def reset(self, phase_ids: Iterable[str] | None = None) -> list[str]:
        """Forget completion of the given phases (all when None).

        Returns the phase IDs actually removed.
        """
        if phase_ids is None:
            removed = list(self._state)
            self._state.clear()
        else:
            removed = [p for p in phase_ids if self._state.pop(p, None) is not None]

        if self._read_only:
            logger.info("[DRY-RUN] Would reset phases: %s", ", ".join(removed) or "none")
            return removed
        self._save()
        return removed

    def _save(self) -> None:
        """Rewrite the whole file atomically."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = render_state(self._state)

        fd, tmp_path = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=".setup_state_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            os.replace(tmp, self._path)
            logger.debug("State saved to %s", self._path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            logger.error("Failed to save state to %s", self._path)
            raise
