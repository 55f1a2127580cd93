"""
Validation — read-only inventory of what setup should have installed.

Nothing here mutates the machine, so probes go straight through the
gateway's query/which helpers in any mode.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.settings import SetupPaths, Settings

logger = logging.getLogger(__name__)

_BREW_LINE = re.compile(r'^\s*brew\s+"([^"]+)"')
_CASK_LINE = re.compile(r'^\s*cask\s+"([^"]+)"')


@dataclass
class Check:
    name: str
    present: bool
    detail: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "present": self.present, "detail": self.detail}


@dataclass
class ValidationReport:
    checks: list[Check] = field(default_factory=list)

    def add(self, name: str, present: bool, detail: str = "") -> None:
        self.checks.append(Check(name, present, detail))

    @property
    def missing(self) -> list[Check]:
        return [c for c in self.checks if not c.present]

    @property
    def ok(self) -> bool:
        return not self.missing

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "checks": [c.to_dict() for c in self.checks],
            "missing": [c.name for c in self.missing],
        }


def parse_brewfile(path: Path) -> tuple[list[str], list[str]]:
    """Formula and cask names declared in a Brewfile."""
    formulae, casks = [], []
    for line in path.read_text(encoding="utf-8", errors="replace").splitlines():
        brew = _BREW_LINE.match(line)
        if brew:
            formulae.append(brew.group(1))
            continue
        cask = _CASK_LINE.match(line)
        if cask:
            casks.append(cask.group(1))
    return formulae, casks


class Validator:
    """Collects presence checks into a ``ValidationReport``."""

    def __init__(self, settings: Settings, paths: SetupPaths, gateway: ExecutionGateway):
        self._settings = settings
        self._paths = paths
        self._gw = gateway

    def _version(self, argv: list[str]) -> str:
        receipt = self._gw.query(argv)
        return receipt.output.strip() if receipt.ok else ""

    def run(self) -> ValidationReport:
        report = ValidationReport()
        gw, paths = self._gw, self._paths

        report.add("Xcode Command Line Tools", gw.query(["xcode-select", "-p"]).ok)

        has_brew = gw.which("brew") is not None
        report.add("Homebrew", has_brew)
        if has_brew and paths.brewfile.is_file():
            self._check_brewfile(report)

        for key in ("user.name", "user.email"):
            value = self._version(["git", "config", "--global", key])
            report.add(f"Git {key}", bool(value), value)

        report.add(f"SSH key ({paths.ssh_key})", paths.ssh_key.is_file())
        report.add("Oh My Zsh", paths.oh_my_zsh.is_dir())
        report.add(".zshrc file", (paths.home / ".zshrc").is_file())

        has_node = gw.which("node") is not None
        report.add("Node.js", has_node, self._version(["node", "--version"]) if has_node else "")
        report.add(f"NVM directory ({paths.nvm_dir})", paths.nvm_dir.is_dir())

        has_python = gw.which("python3") is not None
        report.add("Python", has_python, self._version(["python3", "--version"]) if has_python else "")
        report.add(f"pyenv directory ({paths.pyenv_dir})", paths.pyenv_dir.is_dir())

        for app in self._settings.applications:
            report.add(f"{app.bundle}.app", (paths.applications_dir / f"{app.bundle}.app").is_dir())

        for check in report.checks:
            if check.present:
                logger.info("present: %s", check.name)
            else:
                logger.warning("missing: %s", check.name)
        return report

    def _check_brewfile(self, report: ValidationReport) -> None:
        formulae, casks = parse_brewfile(self._paths.brewfile)
        installed_formulae = set(self._gw.query(["brew", "list", "--formula", "-1"]).output.split())
        installed_casks = set(self._gw.query(["brew", "list", "--cask", "-1"]).output.split())
        for name in formulae:
            report.add(f"Homebrew package {name}", name in installed_formulae)
        for name in casks:
            report.add(f"Homebrew cask {name}", name in installed_casks)
