"""
Rollback — undo a provisioning run, one confirmed step at a time.

Runs independently of any setup run, against what earlier runs left
on disk: the latest backup snapshot and the installed artifacts.

Order:
    1. restore files from the latest snapshot
    2. dotfiles repository and configuration symlinks
    3. generated SSH key pair (and its ssh config line)
    4. NVM and pyenv directories
    5. Oh My Zsh and the login shell
    6. GUI applications
    7. Homebrew and everything it manages (its own confirmation)
    8. state file and log file

Every step is best-effort: a failure is logged, recorded in the
report, and the next step still runs.
"""

from __future__ import annotations

import getpass
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.report import DECLINED, FAILED, OK, SKIPPED, StepReport
from devsetup.core.models.settings import HOMEBREW_UNINSTALL_URL, SetupPaths, Settings
from devsetup.core.persistence.backup_store import latest_snapshot
from devsetup.core.prompts import Confirm

logger = logging.getLogger(__name__)

CONFIG_LINKS = (".zshrc", ".gitconfig", ".zprofile")
HOMEBREW_PROMPT = "Remove ALL Homebrew packages and Homebrew? (This affects all brew packages)"


@dataclass
class RollbackReport(StepReport):
    """Step outcomes plus the snapshot that was restored from."""

    snapshot: Path | None = None

    def to_dict(self) -> dict:
        return {"snapshot": str(self.snapshot) if self.snapshot else None, **super().to_dict()}


class RollbackProcedure:
    """Confirm-gated removal of what setup created."""

    def __init__(
        self,
        settings: Settings,
        paths: SetupPaths,
        gateway: ExecutionGateway,
        confirm: Confirm,
        confirm_homebrew: Confirm | None = None,
    ):
        self._settings = settings
        self._paths = paths
        self._gw = gateway
        self._confirm = confirm
        self._confirm_homebrew = confirm_homebrew or confirm
        self.report = RollbackReport()

    # ── Driver ───────────────────────────────────────────────────

    def run(self) -> RollbackReport:
        logger.info("Starting rollback of the development environment setup...")
        self.restore_backups()
        self.remove_dotfiles()
        self.remove_ssh_keys()
        self.remove_toolchain_dirs()
        self.reset_shell()
        self.remove_applications()
        self.remove_homebrew()
        self.remove_state_and_log()
        logger.info("Rollback complete. Please restart your terminal session.")
        return self.report

    def _step(
        self,
        name: str,
        question: str,
        action: Callable[[], None],
        confirm: Confirm | None = None,
    ) -> str:
        """Ask, then run ``action``; never raises."""
        ask = confirm or self._confirm
        if not ask(question):
            logger.info("Skipped: %s", name)
            self.report.add(name, DECLINED)
            return DECLINED
        try:
            action()
        except Exception as e:
            logger.warning("Rollback step '%s' failed: %s", name, e)
            self.report.add(name, FAILED, str(e))
            return FAILED
        self.report.add(name, OK)
        return OK

    # ── Steps ────────────────────────────────────────────────────

    def restore_backups(self) -> None:
        root = self._paths.backup_root
        snapshot = latest_snapshot(root)
        if snapshot is None:
            logger.info("No backup snapshots found in %s; nothing to restore.", root)
            self.report.add("restore", SKIPPED, "no snapshot")
            return

        self.report.snapshot = snapshot
        logger.info("Restoring configuration files from %s...", snapshot)
        for backup in sorted(snapshot.rglob("*")):
            if backup.is_dir() and not backup.is_symlink():
                continue
            rel = backup.relative_to(snapshot)
            dest = self._paths.home / rel
            self._step(
                f"restore {rel}",
                f"Restore {rel}?",
                lambda b=backup, d=dest: self._gw.copy(b, d),
            )

    def remove_dotfiles(self) -> None:
        repo = self._paths.dotfiles_dir
        if repo.exists():
            self._step(
                "remove dotfiles repository",
                f"Remove cloned dotfiles repository ({repo})?",
                lambda: self._gw.remove(repo),
            )
        for name in CONFIG_LINKS:
            link = self._paths.home / name
            if link.is_symlink():
                self._step(
                    f"remove symlink {name}",
                    f"Remove symlink {link}?",
                    lambda p=link: self._gw.remove(p),
                )

    def remove_ssh_keys(self) -> None:
        key = self._paths.ssh_key
        if not (key.exists() or self._paths.ssh_public_key.exists()):
            self.report.add("remove ssh key", SKIPPED, "no key")
            return
        self._step("remove ssh key", f"Remove SSH key ({key})?", self._remove_key_pair)

    def _remove_key_pair(self) -> None:
        self._gw.remove(self._paths.ssh_key)
        self._gw.remove(self._paths.ssh_public_key)

        config = self._paths.ssh_config
        if not config.is_file():
            return
        marker = f"IdentityFile ~/.ssh/{self._paths.ssh_key.name}"
        text = config.read_text(encoding="utf-8", errors="replace")
        kept = [line for line in text.splitlines(keepends=True) if marker not in line]
        if len(kept) == len(text.splitlines(keepends=True)):
            return
        self._gw.copy(config, config.with_name(config.name + ".bak"))
        self._gw.write_text(config, "".join(kept), mode=0o600)

    def remove_toolchain_dirs(self) -> None:
        for label, path in (("NVM", self._paths.nvm_dir), ("pyenv", self._paths.pyenv_dir)):
            if not path.exists():
                self.report.add(f"remove {label}", SKIPPED, "not present")
                continue
            self._step(
                f"remove {label}",
                f"Remove {label} directory ({path})?",
                lambda p=path: self._gw.remove(p),
            )

    def reset_shell(self) -> None:
        omz = self._paths.oh_my_zsh
        if omz.exists():
            self._step(
                "remove oh-my-zsh",
                f"Remove Oh My Zsh ({omz})?",
                lambda: self._gw.remove(omz),
            )
        self._step(
            "restore login shell",
            "Change default shell back to /bin/bash?",
            lambda: self._gw.run(["chsh", "-s", "/bin/bash", getpass.getuser()], interactive=True),
        )

    def remove_applications(self) -> None:
        apps_dir = self._paths.applications_dir
        for app in self._settings.applications:
            bundle = apps_dir / f"{app.bundle}.app"
            if not bundle.is_dir():
                continue
            self._step(
                f"remove {app.bundle}.app",
                f"Remove {bundle.name} from {apps_dir}?",
                lambda b=bundle: self._remove_app(b),
            )

    def _remove_app(self, bundle: Path) -> None:
        if os.access(bundle.parent, os.W_OK):
            self._gw.remove(bundle)
        else:
            self._gw.run(["sudo", "rm", "-rf", str(bundle)], interactive=True)

    def remove_homebrew(self) -> None:
        if not self._gw.which("brew"):
            logger.info("Homebrew is not installed. Skipping Homebrew removal.")
            self.report.add("remove homebrew", SKIPPED, "not installed")
            return
        self._step(
            "remove homebrew",
            HOMEBREW_PROMPT,
            self._uninstall_homebrew,
            confirm=self._confirm_homebrew,
        )

    def _uninstall_homebrew(self) -> None:
        listing = self._gw.query(["brew", "list", "-1"])
        for pkg in listing.output.split():
            receipt = self._gw.run(["brew", "uninstall", "--force", pkg], check=False, timeout=None)
            if receipt.failed:
                logger.warning("Could not uninstall %s: %s", pkg, receipt.error)

        script = self._paths.temp_file("brew_uninstall.sh")
        try:
            self._gw.download(HOMEBREW_UNINSTALL_URL, script)
            self._gw.run(["/bin/bash", str(script)], interactive=True, timeout=None)
        finally:
            self._gw.remove(script, check=False)

    def remove_state_and_log(self) -> None:
        for label, path in (("state file", self._paths.state_file), ("log file", self._paths.log_file)):
            if not path.is_file():
                continue
            self._step(
                f"remove {label}",
                f"Remove {label} ({path})?",
                lambda p=path: self._gw.remove(p),
            )
