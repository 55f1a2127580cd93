"""
Settings model — what to provision and where state lives.

Defaults reproduce a complete workstation setup with no config file.
Paths may start with ``~``; ``Settings.resolve(home)`` anchors them
to a concrete home directory so tests can provision a temp dir.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_DOTFILES_REPO = "https://github.com/mkernsNCR/my-dotfiles.git"

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
HOMEBREW_UNINSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/uninstall.sh"
OH_MY_ZSH_INSTALL_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
GITHUB_KEYS_URL = "https://api.github.com/user/keys"


class Application(BaseModel):
    """A GUI application shipped as a disk image."""

    name: str                 # display name, e.g. "Google Chrome"
    bundle: str               # bundle name without .app
    url: str                  # where the disk image is downloaded from
    image: str                # file name under ~/Downloads


class ZshPlugin(BaseModel):
    """An Oh My Zsh plugin cloned into the custom plugins directory."""

    name: str
    repo: str


def _default_applications() -> list[Application]:
    return [
        Application(
            name="PyCharm Professional",
            bundle="PyCharm",
            url="https://download.jetbrains.com/python/pycharm-professional.dmg",
            image="pycharm.dmg",
        ),
        Application(
            name="ChatGPT Desktop",
            bundle="ChatGPT",
            url="https://persistent.oaistatic.com/sidekick/public/ChatGPT_Desktop_public_latest.dmg",
            image="ChatGPT.dmg",
        ),
        Application(
            name="Google Chrome",
            bundle="Google Chrome",
            url="https://dl.google.com/chrome/mac/stable/GGRO/googlechrome.dmg",
            image="GoogleChrome.dmg",
        ),
    ]


def _default_plugins() -> list[ZshPlugin]:
    return [
        ZshPlugin(name="zsh-autosuggestions", repo="https://github.com/zsh-users/zsh-autosuggestions"),
        ZshPlugin(name="zsh-syntax-highlighting", repo="https://github.com/zsh-users/zsh-syntax-highlighting"),
    ]


class Settings(BaseModel):
    """User configuration, loaded from YAML (all keys optional)."""

    # ── Durable locations ────────────────────────────────────────
    log_file: str = "~/unified_setup.log"
    state_file: str = "~/.setup_state"
    backup_root: str = "~/.setup_backups"

    # ── Preconditions ────────────────────────────────────────────
    required_platform: str = "Darwin"
    min_free_gb: float = 5.0

    # ── Prerequisites ────────────────────────────────────────────
    xcode_timeout: int = 600
    poll_interval: int = 5
    brewfile: str = "~/.config/devsetup/Brewfile"
    brew_formulae: list[str] = Field(default_factory=lambda: [
        "git", "node", "python@3.12", "pyenv", "nvm",
        "wget", "curl", "tree", "jq", "defaultbrowser",
    ])
    brew_casks: list[str] = Field(default_factory=lambda: [
        "visual-studio-code", "iterm2", "docker",
    ])

    # ── Identity ─────────────────────────────────────────────────
    ssh_key_name: str = "id_ed25519"
    git_default_branch: str = "main"

    # ── Shell & dotfiles ─────────────────────────────────────────
    zsh_plugins: list[ZshPlugin] = Field(default_factory=_default_plugins)
    dotfiles_repo: str = DEFAULT_DOTFILES_REPO
    dotfiles_dir: str = "~/dotfiles"
    linked_dotfiles: list[str] = Field(default_factory=lambda: [".zshrc", ".gitconfig"])

    # ── Toolchains ───────────────────────────────────────────────
    npm_global_packages: list[str] = Field(default_factory=lambda: [
        "yarn", "typescript", "nodemon", "create-react-app",
    ])
    python_version: str = "3.12.7"
    pip_packages: list[str] = Field(default_factory=lambda: [
        "virtualenv", "black", "flake8", "pytest", "requests",
    ])

    # ── Applications ─────────────────────────────────────────────
    applications_dir: str = "/Applications"
    applications: list[Application] = Field(default_factory=_default_applications)
    default_browser: str = "chrome"

    # ── Cleanup ──────────────────────────────────────────────────
    volume_pattern: str = r"^/Volumes/(ChatGPT|PyCharm|Google ?Chrome)"
    temp_glob: str = "/tmp/setup_temp_*"

    @property
    def dotfiles_enabled(self) -> bool:
        repo = self.dotfiles_repo.strip()
        return bool(repo) and repo != "skip"

    def resolve(self, home: Path) -> SetupPaths:
        """Anchor every ``~`` path to ``home``."""

        def _p(raw: str) -> Path:
            if raw == "~":
                return home
            if raw.startswith("~/"):
                return home / raw[2:]
            return Path(raw)

        temp = Path(self.temp_glob)
        return SetupPaths(
            home=home,
            log_file=_p(self.log_file),
            state_file=_p(self.state_file),
            backup_root=_p(self.backup_root),
            brewfile=_p(self.brewfile),
            dotfiles_dir=_p(self.dotfiles_dir),
            ssh_dir=home / ".ssh",
            ssh_key=home / ".ssh" / self.ssh_key_name,
            oh_my_zsh=home / ".oh-my-zsh",
            nvm_dir=home / ".nvm",
            pyenv_dir=home / ".pyenv",
            downloads=home / "Downloads",
            applications_dir=_p(self.applications_dir),
            temp_dir=temp.parent,
            temp_prefix=temp.name.rstrip("*"),
        )


@dataclass(frozen=True)
class SetupPaths:
    """Absolute locations for one home directory."""

    home: Path
    log_file: Path
    state_file: Path
    backup_root: Path
    brewfile: Path
    dotfiles_dir: Path
    ssh_dir: Path
    ssh_key: Path
    oh_my_zsh: Path
    nvm_dir: Path
    pyenv_dir: Path
    downloads: Path
    applications_dir: Path
    temp_dir: Path
    temp_prefix: str

    @property
    def ssh_public_key(self) -> Path:
        return self.ssh_key.with_name(self.ssh_key.name + ".pub")

    @property
    def ssh_config(self) -> Path:
        return self.ssh_dir / "config"

    def temp_file(self, name: str) -> Path:
        """A transient working file that the cleanup routine will delete."""
        return self.temp_dir / f"{self.temp_prefix}{name}"
