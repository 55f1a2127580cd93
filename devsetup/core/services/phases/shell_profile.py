"""Shell profile editing shared by several phases."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from devsetup.core.models.phase import PhaseContext

logger = logging.getLogger(__name__)


def export_line(directory: str | Path) -> str:
    return f'export PATH="{directory}:$PATH"'


def add_to_path_file(ctx: PhaseContext, directory: str | Path, rc_file: Path) -> bool:
    """Append a PATH export for ``directory`` to ``rc_file`` once.

    Returns True when the file was (or in a preview, would be) changed.
    """
    directory = Path(directory)
    if not directory.is_dir():
        logger.warning("Skipping addition of %s to PATH: directory does not exist", directory)
        return False

    if str(directory) in os.environ.get("PATH", "").split(os.pathsep):
        logger.info("%s is already in PATH", directory)
        return False

    line = export_line(directory)
    if rc_file.is_file() and line in rc_file.read_text(encoding="utf-8", errors="replace"):
        logger.info("%s PATH export already present in %s", directory, rc_file)
        return False

    ctx.backups.backup(rc_file)
    ctx.gateway.append_text(rc_file, line + "\n")
    logger.info("Added %s to PATH in %s", directory, rc_file)
    return True
