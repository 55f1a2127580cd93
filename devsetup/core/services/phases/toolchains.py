"""
development_tools — Node.js through NVM, Python through pyenv.

NVM is a shell function, so every NVM call runs in a fresh bash that
sources ``nvm.sh`` first. Paths and package names travel as positional
arguments, never spliced into the script text.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from devsetup.core.errors import PhaseError
from devsetup.core.models.phase import PhaseContext

logger = logging.getLogger(__name__)

NVM_INSTALL_LTS = (
    'export NVM_DIR="$1"; . "$2" || exit 1; '
    "nvm install --lts && nvm use --lts && nvm alias default node"
)
NPM_INSTALL_GLOBAL = (
    'export NVM_DIR="$1"; . "$2" || exit 1; shift 2; '
    'npm install -g "$@"'
)


def latest_patch(listing: str, version: str) -> str | None:
    """Newest ``X.Y.Z`` in ``pyenv install --list`` output sharing X.Y with ``version``."""
    series = ".".join(version.split(".")[:2])
    pattern = re.compile(rf"^{re.escape(series)}\.(\d+)$")
    best: tuple[int, str] | None = None
    for line in listing.splitlines():
        candidate = line.strip()
        match = pattern.match(candidate)
        if match and (best is None or int(match.group(1)) > best[0]):
            best = (int(match.group(1)), candidate)
    return best[1] if best else None


def install_node(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    if not gw.query(["brew", "list", "nvm"]).ok:
        logger.warning("NVM not installed via Homebrew; skipping Node.js setup")
        return

    prefix = gw.query(["brew", "--prefix", "nvm"]).output.strip()
    nvm_script = Path(prefix) / "nvm.sh"
    nvm_dir = ctx.paths.nvm_dir
    gw.make_dirs(nvm_dir)

    if not prefix or not nvm_script.is_file():
        logger.warning("NVM script not found at %s; skipping Node.js installation", nvm_script)
        return

    if gw.which("node"):
        version = gw.query(["node", "--version"]).output.strip()
        logger.info("Node.js already installed (%s). Skipping installation.", version)
    else:
        logger.info("Installing latest LTS version of Node.js via NVM...")
        gw.run(
            ["/bin/bash", "-c", NVM_INSTALL_LTS, "nvm", str(nvm_dir), str(nvm_script)],
            timeout=None,
            description="nvm install --lts && nvm use --lts && nvm alias default node",
        )
        logger.info("Node.js installation complete!")

    packages = ctx.settings.npm_global_packages
    if packages:
        logger.info("Installing global npm packages (%s)...", ", ".join(packages))
        gw.run(
            ["/bin/bash", "-c", NPM_INSTALL_GLOBAL, "npm", str(nvm_dir), str(nvm_script), *packages],
            timeout=None,
            description="npm install -g " + " ".join(packages),
        )


def install_python(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    if not gw.which("pyenv"):
        logger.warning("pyenv not installed; skipping Python setup")
        return

    target = ctx.settings.python_version
    installed = gw.query(["pyenv", "versions", "--bare"]).output.split()
    if target in installed:
        logger.info("Python %s already installed via pyenv.", target)
    else:
        logger.info("Installing Python %s via pyenv (this may take a while)...", target)
        receipt = gw.run(["pyenv", "install", target], check=False, timeout=None)
        if receipt.failed:
            fallback = latest_patch(gw.query(["pyenv", "install", "--list"]).output, target)
            if fallback is None:
                raise PhaseError(f"Failed to install any Python {target} series version via pyenv")
            logger.warning("pyenv install %s failed; falling back to %s", target, fallback)
            gw.run(["pyenv", "install", "--skip-existing", fallback], timeout=None)
            target = fallback

    logger.info("Setting Python %s as global default via pyenv...", target)
    gw.run(["pyenv", "global", target])

    gw.run(["pyenv", "exec", "pip", "install", "--upgrade", "pip"], timeout=None)
    packages = ctx.settings.pip_packages
    if packages:
        logger.info("Installing Python packages (%s)...", ", ".join(packages))
        gw.run(["pyenv", "exec", "pip", "install", *packages], timeout=None)


def install_toolchains(ctx: PhaseContext) -> None:
    if not ctx.gateway.which("brew"):
        raise PhaseError("Homebrew must be installed before development tools can be set up.")
    install_node(ctx)
    install_python(ctx)
