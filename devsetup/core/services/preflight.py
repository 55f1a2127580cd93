"""
Preflight — host checks that run before any phase.

A failure here aborts the run without touching state, backups or
the machine.
"""

from __future__ import annotations

import logging
import platform
import shutil
from pathlib import Path
from typing import Callable

from devsetup.core.errors import PreconditionError
from devsetup.core.models.settings import Settings

logger = logging.getLogger(__name__)

_GIB = 1024 ** 3


def free_disk_gb(path: Path, disk_usage: Callable = shutil.disk_usage) -> float:
    """Free space on the filesystem holding ``path``, in GiB."""
    return disk_usage(str(path)).free / _GIB


def check_preconditions(
    settings: Settings,
    home: Path,
    *,
    system: Callable[[], str] = platform.system,
    disk_usage: Callable = shutil.disk_usage,
) -> None:
    """Verify platform and free disk space.

    Raises:
        PreconditionError: The host does not qualify.
    """
    current = system()
    if settings.required_platform and current != settings.required_platform:
        raise PreconditionError(
            f"This tool provisions {settings.required_platform} hosts, "
            f"not {current}. Exiting."
        )

    free = free_disk_gb(home, disk_usage)
    if free < settings.min_free_gb:
        raise PreconditionError(
            f"Only {free:.1f} GB free; at least {settings.min_free_gb:g} GB required."
        )
    logger.debug("Preconditions met: %s, %.1f GB free", current, free)
