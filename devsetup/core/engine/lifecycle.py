"""
Run lifecycle — signal handling, exit status and the cleanup routine.

Usage::

    with RunLifecycle(gateway, settings, paths) as run:
        orchestrator.run(ctx)
    sys.exit(run.exit_code)

Whatever happens inside the block (success, a failed phase, an
interrupt), the cleanup routine runs exactly once on the way out:
leftover disk images are detached, transient downloads are deleted,
and one terminal message is logged.
"""

from __future__ import annotations

import logging
import re
import signal
import threading
from types import FrameType, TracebackType
from typing import Any

from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.errors import PhaseFailed, SetupError, SetupInterrupted
from devsetup.core.models.settings import SetupPaths, Settings

logger = logging.getLogger(__name__)

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Logged as a one-line message rather than a traceback
_REPORTED = (SetupError, SetupInterrupted, KeyboardInterrupt)
# Turned into an exit code instead of propagating
_SUPPRESSED = (Exception, SetupInterrupted, KeyboardInterrupt)

# "/dev/disk4s1 on /Volumes/PyCharm (hfs, local, nodev, ...)"
_MOUNT_LINE = re.compile(r" on (/Volumes/.+?) \(")


def mounted_volumes(mount_output: str) -> list[str]:
    """Mount points under /Volumes from ``mount`` output."""
    volumes = []
    for line in mount_output.splitlines():
        match = _MOUNT_LINE.search(line)
        if match:
            volumes.append(match.group(1))
    return volumes


def exit_code_for(exc: BaseException | None) -> int:
    """Process exit status for the way a run ended."""
    if exc is None:
        return 0
    if isinstance(exc, SetupInterrupted):
        return 128 + exc.signum
    if isinstance(exc, KeyboardInterrupt):
        return 128 + signal.SIGINT
    return 1


class RunLifecycle:
    """Context manager wrapping one provisioning run."""

    def __init__(
        self,
        gateway: ExecutionGateway,
        settings: Settings,
        paths: SetupPaths,
        install_signal_handlers: bool = True,
    ):
        self._gateway = gateway
        self._settings = settings
        self._paths = paths
        self._install_handlers = install_signal_handlers
        self._previous: dict[int, Any] = {}
        self._cleaned = False
        self.exit_code: int = 0
        self.failed_phase: str | None = None
        self.error: BaseException | None = None

    # ── Context manager ──────────────────────────────────────────

    def __enter__(self) -> RunLifecycle:
        if self._install_handlers and threading.current_thread() is threading.main_thread():
            for signum in _HANDLED_SIGNALS:
                self._previous[signum] = signal.signal(signum, self._on_signal)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool:
        self._ignore_signals()
        try:
            self.exit_code = exit_code_for(exc)
            self.error = exc
            self.failed_phase = getattr(exc, "phase_id", None)

            if exc is not None and not isinstance(exc, _REPORTED):
                logger.error("Unexpected error: %s", exc, exc_info=(exc_type, exc, tb))
            elif exc is not None and not isinstance(exc, PhaseFailed):
                logger.error("%s", exc or exc_type.__name__)

            self.cleanup()
        finally:
            self._restore_handlers()

        # SystemExit and other BaseExceptions propagate after cleanup
        return exc is None or isinstance(exc, _SUPPRESSED)

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        self._ignore_signals()
        raise SetupInterrupted(signum)

    def _ignore_signals(self) -> None:
        # Cleanup must not be interrupted by a second signal
        for signum in self._previous:
            signal.signal(signum, signal.SIG_IGN)

    def _restore_handlers(self) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous if previous is not None else signal.SIG_DFL)
        self._previous.clear()

    # ── Cleanup ──────────────────────────────────────────────────

    def cleanup(self) -> None:
        """Detach images, delete transient files, log the outcome. Once."""
        if self._cleaned:
            return
        self._cleaned = True

        logger.info("Performing cleanup...")
        try:
            self._detach_volumes()
        except Exception as e:
            logger.warning("Could not detach volumes: %s", e)
        try:
            self._remove_temp_files()
        except Exception as e:
            logger.warning("Could not remove temporary files: %s", e)

        if self.exit_code == 0:
            logger.info("Setup completed successfully!")
        elif self.failed_phase:
            logger.error(
                "Setup failed at phase '%s' with exit code %d",
                self.failed_phase, self.exit_code,
            )
        else:
            logger.error("Setup failed with exit code %d", self.exit_code)

    def _detach_volumes(self) -> None:
        pattern = re.compile(self._settings.volume_pattern)
        mounts = self._gateway.query(["mount"])
        if not mounts.ok:
            return
        for volume in mounted_volumes(mounts.output):
            if pattern.match(volume):
                receipt = self._gateway.run(
                    ["hdiutil", "detach", volume, "-quiet"], check=False,
                )
                if receipt.failed:
                    logger.warning("Failed to unmount %s", volume)

    def _remove_temp_files(self) -> None:
        temp_dir = self._paths.temp_dir
        if not temp_dir.is_dir():
            return
        for path in sorted(temp_dir.glob(f"{self._paths.temp_prefix}*")):
            self._gateway.remove(path, check=False)
