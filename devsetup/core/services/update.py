"""
Update — non-destructive refresh of what setup installed.

Homebrew packages, Node.js LTS, the Python patch release, the
dotfiles repository and Oh My Zsh. Each step is independent and
best-effort; absent components are skipped.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.report import FAILED, OK, SKIPPED, StepReport
from devsetup.core.models.settings import SetupPaths, Settings
from devsetup.core.services.phases.toolchains import latest_patch

logger = logging.getLogger(__name__)

NVM_UPDATE_LTS = (
    'export NVM_DIR="$1"; . "$2" || exit 1; '
    "nvm install --lts && nvm alias default node"
)
NPM_UPDATE_GLOBAL = (
    'export NVM_DIR="$1"; . "$2" || exit 1; shift 2; '
    'npm update -g "$@"'
)


def _version_key(version: str) -> tuple[int, ...]:
    try:
        return tuple(int(p) for p in version.split("."))
    except ValueError:
        return ()


class Updater:
    """Runs each refresh step, recording outcomes."""

    def __init__(self, settings: Settings, paths: SetupPaths, gateway: ExecutionGateway):
        self._settings = settings
        self._paths = paths
        self._gw = gateway
        self.report = StepReport()

    def run(self) -> StepReport:
        logger.info("Starting update of dev environment components...")
        self._step("homebrew", self.update_homebrew)
        self._step("node", self.update_node)
        self._step("python", self.update_python)
        self._step("dotfiles", self.update_dotfiles)
        self._step("oh-my-zsh", self.update_oh_my_zsh)
        logger.info("Update complete. You may need to restart your terminal for all changes to take effect.")
        return self.report

    def _step(self, name: str, action: Callable[[], bool]) -> None:
        try:
            performed = action()
        except Exception as e:
            logger.warning("Update step '%s' failed: %s", name, e)
            self.report.add(name, FAILED, str(e))
            return
        self.report.add(name, OK if performed else SKIPPED)

    # ── Steps (return False when the component is absent) ────────

    def update_homebrew(self) -> bool:
        if not self._gw.which("brew"):
            logger.info("Homebrew not found; skipping brew updates.")
            return False
        for sub in ("update", "upgrade", "cleanup"):
            self._gw.run(["brew", sub], timeout=None)
        return True

    def update_node(self) -> bool:
        gw = self._gw
        if not gw.which("brew") or not gw.query(["brew", "list", "nvm"]).ok:
            logger.info("NVM not detected; skipping Node.js update.")
            return False
        nvm_script = Path(gw.query(["brew", "--prefix", "nvm"]).output.strip()) / "nvm.sh"
        if not nvm_script.is_file():
            logger.info("NVM script not found at %s; skipping Node.js update.", nvm_script)
            return False

        nvm_dir = str(self._paths.nvm_dir)
        logger.info("Updating Node.js to the latest LTS via NVM...")
        gw.run(
            ["/bin/bash", "-c", NVM_UPDATE_LTS, "nvm", nvm_dir, str(nvm_script)],
            timeout=None,
            description="nvm install --lts && nvm alias default node",
        )
        packages = self._settings.npm_global_packages
        if packages:
            receipt = gw.run(
                ["/bin/bash", "-c", NPM_UPDATE_GLOBAL, "npm", nvm_dir, str(nvm_script), *packages],
                check=False,
                timeout=None,
                description="npm update -g " + " ".join(packages),
            )
            if receipt.failed:
                logger.warning("Could not upgrade global npm packages: %s", receipt.error)
        return True

    def update_python(self) -> bool:
        gw = self._gw
        if not gw.which("pyenv"):
            logger.info("pyenv not detected; skipping Python update.")
            return False

        current = gw.query(["pyenv", "global"]).output.strip().split("\n")[0]
        if current and current != "system":
            newest = latest_patch(gw.query(["pyenv", "install", "--list"]).output, current)
            if newest and _version_key(newest) > _version_key(current):
                logger.info("Installing newer Python version %s via pyenv...", newest)
                gw.run(["pyenv", "install", "--skip-existing", newest], timeout=None)
                gw.run(["pyenv", "global", newest])

        logger.info("Upgrading pip and installed Python packages...")
        receipt = gw.run(
            ["pyenv", "exec", "pip", "install", "--upgrade", "pip", *self._settings.pip_packages],
            check=False,
            timeout=None,
        )
        if receipt.failed:
            logger.warning("Could not upgrade Python packages: %s", receipt.error)
        return True

    def update_dotfiles(self) -> bool:
        repo = self._paths.dotfiles_dir
        if not (repo / ".git").is_dir():
            return False
        logger.info("Pulling latest changes in dotfiles repository...")
        self._gw.run(["git", "-C", str(repo), "pull", "--ff-only"])
        return True

    def update_oh_my_zsh(self) -> bool:
        omz = self._paths.oh_my_zsh
        if not omz.is_dir():
            return False
        logger.info("Updating Oh My Zsh...")
        self._gw.run(["git", "-C", str(omz), "pull", "--ff-only"])
        return True
