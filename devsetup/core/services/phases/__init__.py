"""
The seven provisioning phases, in execution order.

Phase IDs are persisted in the state file; renaming one makes every
existing installation re-run it.
"""

from __future__ import annotations

from devsetup.core.models.phase import Phase
from devsetup.core.services.phases.applications import install_applications
from devsetup.core.services.phases.dotfiles import link_dotfiles
from devsetup.core.services.phases.identity import configure_identity
from devsetup.core.services.phases.prerequisites import provision_prerequisites
from devsetup.core.services.phases.shell import configure_shell
from devsetup.core.services.phases.system import configure_system
from devsetup.core.services.phases.toolchains import install_toolchains


def build_phases() -> list[Phase]:
    return [
        Phase("system_prerequisites", provision_prerequisites, "Xcode tools and Homebrew"),
        Phase("git_and_ssh", configure_identity, "Git identity and SSH key"),
        Phase("shell_configuration", configure_shell, "Oh My Zsh and .zshrc"),
        Phase("dotfiles", link_dotfiles, "Dotfiles repository"),
        Phase("development_tools", install_toolchains, "Node.js and Python"),
        Phase("applications", install_applications, "GUI applications"),
        Phase("system_configuration", configure_system, "Default browser"),
    ]


PHASE_IDS = tuple(p.phase_id for p in build_phases())

__all__ = ["PHASE_IDS", "build_phases"]
