"""
Disk image adapter — copy an application bundle out of a .dmg.

Mount, locate, copy, detach. The detach runs even when the copy
fails; anything left mounted is caught by the run's cleanup routine.
"""

from __future__ import annotations

import logging
import os
import plistlib
from pathlib import Path

from devsetup.adapters.base import Adapter, ExecutionContext
from devsetup.adapters.shell.command import ShellCommandAdapter
from devsetup.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


def _mount_point(plist_output: bytes | str) -> str | None:
    """Extract the /Volumes mount point from ``hdiutil attach -plist``."""
    if isinstance(plist_output, str):
        plist_output = plist_output.encode("utf-8")
    try:
        data = plistlib.loads(plist_output)
    except Exception:
        return None
    for entity in data.get("system-entities", []):
        mount = entity.get("mount-point")
        if mount:
            return mount
    return None


def find_bundle(volume: Path, bundle: str) -> Path | None:
    """Locate ``<bundle>.app`` at most two levels below ``volume``."""
    name = f"{bundle}.app"
    for pattern in (name, f"*/{name}"):
        for match in sorted(volume.glob(pattern)):
            if match.is_dir():
                return match
    return None


class DiskImageAdapter(Adapter):
    """Install a GUI application from a disk image.

    Action params:
        image (str): Path to the .dmg file.
        bundle (str): Bundle name without the .app suffix.
        applications_dir (str): Install destination (default: /Applications).
    """

    def __init__(self, shell: ShellCommandAdapter | None = None):
        self._shell = shell or ShellCommandAdapter()

    @property
    def name(self) -> str:
        return "dmg"

    def is_available(self) -> bool:
        return Path("/usr/bin/hdiutil").exists()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        image = context.param("image")
        if not image:
            return False, "Missing required param: 'image'"
        if not context.param("bundle"):
            return False, "Missing required param: 'bundle'"
        if not Path(image).is_file():
            return False, f"Disk image not found: {image}"
        return True, ""

    def _run(self, argv: list[str]) -> Receipt:
        action = Action.command(argv)
        return self._shell.execute(ExecutionContext(action=action, params=action.params))

    def execute(self, context: ExecutionContext) -> Receipt:
        image = context.param("image")
        bundle = context.param("bundle")
        dest_dir = Path(context.param("applications_dir", "/Applications"))

        attach = self._run(["hdiutil", "attach", image, "-nobrowse", "-plist"])
        if not attach.ok:
            return self._fail(context, f"Failed to mount {image}: {attach.error}")

        volume = _mount_point(attach.output)
        if volume is None:
            return self._fail(context, f"Could not determine mount point for {image}")

        try:
            source = find_bundle(Path(volume), bundle)
            if source is None:
                return self._fail(
                    context,
                    f"Unable to locate {bundle}.app in mounted image",
                    metadata={"volume": volume},
                )

            argv = ["cp", "-R", str(source), f"{dest_dir}/"]
            if not os.access(dest_dir, os.W_OK):
                argv.insert(0, "sudo")
            copied = self._run(argv)
            if not copied.ok:
                return self._fail(
                    context,
                    f"Failed to copy {bundle}.app: {copied.error}",
                    metadata={"volume": volume},
                )
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=f"Installed {dest_dir / source.name}",
                metadata={"volume": volume},
            )
        finally:
            detached = self._run(["hdiutil", "detach", volume, "-quiet"])
            if not detached.ok:
                logger.warning("Failed to unmount %s", volume)
