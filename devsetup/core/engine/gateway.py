"""
Execution gateway — the single chokepoint for external effects.

Every mutation a run makes to the machine passes through
``ExecutionGateway.execute``. The gateway logs the action first, then
either dispatches it to an adapter (apply mode) or stops there
(preview mode). Phase bodies never look at the mode.

Read-only probes (``query``, ``which``) run in both modes so that a
preview reflects what the real run would decide.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Any, Callable, Sequence

from devsetup.adapters.registry import AdapterRegistry
from devsetup.core.errors import ExecutionError
from devsetup.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class ExecutionGateway:
    """Logs, then performs (or simulates) actions."""

    def __init__(self, registry: AdapterRegistry, dry_run: bool = False):
        self._registry = registry
        self._dry_run = dry_run
        self.receipts: list[Receipt] = []

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    # ── Core ─────────────────────────────────────────────────────

    def execute(self, action: Action, *, check: bool = True) -> Receipt:
        """Perform ``action``.

        Raises:
            ExecutionError: the adapter reported failure and ``check`` is set.
        """
        logger.info("Executing: %s", action.label)

        if self._dry_run:
            logger.info("[DRY-RUN] Would execute: %s", action.label)
            receipt = Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output="",
                metadata={"simulated": True},
            )
            self.receipts.append(receipt)
            return receipt

        receipt = self._registry.execute_action(action)
        self.receipts.append(receipt)
        if receipt.failed:
            logger.debug("Action failed: %s (%s)", action.label, receipt.error)
            if check:
                raise ExecutionError(receipt, action.label)
        return receipt

    # ── Commands ─────────────────────────────────────────────────

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        env: dict[str, str] | None = None,
        cwd: str | Path | None = None,
        interactive: bool = False,
        timeout: int | None = 300,
        description: str = "",
    ) -> Receipt:
        action = Action.command(
            argv,
            env=env,
            cwd=cwd,
            timeout=timeout,
            interactive=interactive,
            description=description,
        )
        return self.execute(action, check=check)

    def download(self, url: str, dest: Path, *, check: bool = True) -> Receipt:
        """Fetch ``url`` to ``dest`` with curl."""
        return self.run(
            ["curl", "-fsSL", "-o", str(dest), url],
            check=check,
            description=f"download {url} -> {dest}",
        )

    def query(self, argv: Sequence[str], timeout: int = 60) -> Receipt:
        """Run a read-only probe. Executes in both modes, never raises."""
        action = Action.command(argv, timeout=timeout)
        logger.debug("Query: %s", action.label)
        receipt = self._registry.execute_action(action)
        logger.debug("Query result: %s (rc=%s)", receipt.status, receipt.return_code)
        return receipt

    def which(self, name: str) -> str | None:
        """Locate an executable on PATH."""
        found = shutil.which(name)
        logger.debug("which %s -> %s", name, found)
        return found

    def export_path(self, directory: str | Path) -> None:
        """Make ``directory`` visible to later commands of this process."""
        directory = str(directory)
        entries = os.environ.get("PATH", "").split(os.pathsep)
        if directory not in entries:
            os.environ["PATH"] = os.pathsep.join([directory, *entries])
            logger.debug("Prepended %s to PATH", directory)

    def wait_until(
        self,
        argv: Sequence[str],
        *,
        timeout: float,
        interval: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> bool:
        """Poll ``argv`` until it succeeds. False on timeout."""
        if self._dry_run:
            logger.info("[DRY-RUN] Would wait for: %s", " ".join(argv))
            return True

        elapsed = 0.0
        while True:
            if self.query(argv).ok:
                return True
            if elapsed >= timeout:
                return False
            sleep(interval)
            elapsed += interval

    # ── Files ────────────────────────────────────────────────────

    def write_text(self, path: Path, content: str, mode: int | None = None) -> Receipt:
        params: dict[str, Any] = {"content": content}
        if mode is not None:
            params["mode"] = mode
        return self.execute(Action.filesystem("write", path, **params))

    def append_text(self, path: Path, content: str) -> Receipt:
        return self.execute(Action.filesystem("append", path, content=content))

    def make_dirs(self, path: Path, mode: int | None = None) -> Receipt:
        params: dict[str, Any] = {}
        if mode is not None:
            params["mode"] = mode
        return self.execute(Action.filesystem("mkdir", path, **params))

    def chmod(self, path: Path, mode: int) -> Receipt:
        return self.execute(Action.filesystem("chmod", path, mode=mode))

    def symlink(self, link: Path, target: Path) -> Receipt:
        return self.execute(Action.filesystem("symlink", link, target=target))

    def remove(self, path: Path, *, check: bool = True) -> Receipt:
        return self.execute(Action.filesystem("remove", path), check=check)

    def copy(self, src: Path, dest: Path) -> Receipt:
        return self.execute(Action.filesystem("copy", src, target=dest))

    # ── Installers / network ─────────────────────────────────────

    def install_app(
        self,
        image: Path,
        bundle: str,
        applications_dir: Path,
        *,
        check: bool = True,
    ) -> Receipt:
        return self.execute(Action.install_app(image, bundle, applications_dir), check=check)

    def http_post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        *,
        check: bool = False,
    ) -> Receipt:
        return self.execute(Action.http("POST", url, payload=payload, headers=headers), check=check)
