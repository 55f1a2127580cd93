"""
Backup store — timestamped copies taken before any file is modified.

One snapshot directory per run, named ``YYYYMMDD_HHMMSS`` and created
lazily on the first backup request. Files inside mirror their path
relative to the home directory::

    ~/.setup_backups/20240601_120000/.zshrc
    ~/.setup_backups/20240601_120000/.ssh/config

Callers back up strictly before mutating. A second backup of the same
path in one run copies whatever the path holds at that moment.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable

from devsetup.core.errors import BackupError

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "%Y%m%d_%H%M%S"
_SNAPSHOT_RE = re.compile(r"^\d{8}_\d{6}$")


def _exists(path: Path) -> bool:
    # A dangling symlink still counts
    return path.exists() or path.is_symlink()


def _discard(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def copy_preserving(src: Path, dest: Path) -> None:
    """Copy a file, symlink or directory tree with its metadata."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    if src.is_symlink():
        dest.symlink_to(src.readlink())
    elif src.is_dir():
        shutil.copytree(src, dest, symlinks=True)
    else:
        shutil.copy2(src, dest)


def list_snapshots(root: Path) -> list[Path]:
    """Snapshot directories under ``root``, oldest first."""
    if not root.is_dir():
        return []
    return sorted(
        (p for p in root.iterdir() if p.is_dir() and _SNAPSHOT_RE.match(p.name)),
        key=lambda p: p.name,
    )


def latest_snapshot(root: Path) -> Path | None:
    snapshots = list_snapshots(root)
    return snapshots[-1] if snapshots else None


class BackupStore:
    """Per-run backup snapshot."""

    def __init__(
        self,
        root: Path,
        home: Path,
        dry_run: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._root = Path(root)
        self._home = Path(home)
        self._dry_run = dry_run
        self._clock = clock
        self._snapshot: Path | None = None

    @property
    def root(self) -> Path:
        return self._root

    @property
    def snapshot_dir(self) -> Path | None:
        """The snapshot used by this run, or None before the first backup."""
        return self._snapshot

    def destination_for(self, path: Path) -> Path:
        """Where ``path`` lands inside the current snapshot."""
        try:
            rel = Path(path).relative_to(self._home)
        except ValueError:
            raise BackupError(f"Refusing to back up {path}: not under {self._home}") from None
        if not rel.parts:
            raise BackupError("Refusing to back up the home directory itself")
        return self._ensure_snapshot() / rel

    def backup(self, path: Path | str) -> Path | None:
        """Copy ``path`` into the snapshot if it exists.

        Returns the backup location, or None when there was nothing
        to copy (or the run is a preview).
        """
        src = Path(path)
        if not _exists(src):
            return None

        if self._dry_run:
            # Validate containment without creating anything
            try:
                src.relative_to(self._home)
            except ValueError:
                raise BackupError(f"Refusing to back up {src}: not under {self._home}") from None
            logger.info("[DRY-RUN] Would back up %s", src)
            return None

        dest = self.destination_for(src)
        try:
            if _exists(dest):
                _discard(dest)
            copy_preserving(src, dest)
        except OSError as e:
            raise BackupError(f"Could not back up {src}: {e}") from e
        logger.info("Backed up %s to %s", src, dest)
        return dest

    def _ensure_snapshot(self) -> Path:
        if self._snapshot is None:
            self._snapshot = self._root / self._clock().strftime(SNAPSHOT_FORMAT)
            self._snapshot.mkdir(parents=True, exist_ok=True)
            logger.debug("Backup snapshot: %s", self._snapshot)
        return self._snapshot
