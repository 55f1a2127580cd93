"""
shell_configuration — Oh My Zsh, its plugins, and a baseline .zshrc.
"""

from __future__ import annotations

import logging

from devsetup.core.models.phase import PhaseContext
from devsetup.core.models.settings import OH_MY_ZSH_INSTALL_URL, Settings

logger = logging.getLogger(__name__)

BUILTIN_PLUGINS = ["git", "npm", "node", "yarn", "history-substring-search"]

ZSHRC_TEMPLATE = """\
# Auto-generated by devsetup
export ZSH="$HOME/.oh-my-zsh"
ZSH_THEME="robbyrussell"

plugins=(
{plugins}
)

source "$ZSH/oh-my-zsh.sh"

# NVM setup (Homebrew installation)
export NVM_DIR="$HOME/.nvm"
if command -v brew >/dev/null 2>&1 && brew list nvm >/dev/null 2>&1; then
  [ -s "$(brew --prefix nvm)/nvm.sh" ] && source "$(brew --prefix nvm)/nvm.sh"
  [ -s "$(brew --prefix nvm)/etc/bash_completion.d/nvm" ] && source "$(brew --prefix nvm)/etc/bash_completion.d/nvm"
fi

# pyenv setup
export PYENV_ROOT="$HOME/.pyenv"
if [ -d "$PYENV_ROOT/bin" ]; then
  export PATH="$PYENV_ROOT/bin:$PATH"
  eval "$(pyenv init -)"
fi
"""


def render_zshrc(settings: Settings) -> str:
    # zsh-syntax-highlighting must load last, so custom plugins follow the builtins
    names = BUILTIN_PLUGINS + [p.name for p in settings.zsh_plugins]
    return ZSHRC_TEMPLATE.format(plugins="\n".join(f"  {n}" for n in names))


def install_oh_my_zsh(ctx: PhaseContext) -> None:
    gw = ctx.gateway
    omz = ctx.paths.oh_my_zsh
    if omz.is_dir():
        logger.info("Oh My Zsh already installed.")
    else:
        logger.info("Installing Oh My Zsh...")
        script = ctx.paths.temp_file("ohmyzsh_install.sh")
        gw.download(OH_MY_ZSH_INSTALL_URL, script)
        gw.run(["sh", str(script)], env={"RUNZSH": "no", "CHSH": "no"}, timeout=None)

    plugins_dir = omz / "custom" / "plugins"
    gw.make_dirs(plugins_dir)
    for plugin in ctx.settings.zsh_plugins:
        dest = plugins_dir / plugin.name
        if dest.is_dir():
            logger.debug("Plugin %s already present", plugin.name)
            continue
        gw.run(["git", "clone", plugin.repo, str(dest)])


def configure_shell(ctx: PhaseContext) -> None:
    logger.info("Setting up shell configuration...")
    install_oh_my_zsh(ctx)

    home = ctx.paths.home
    ctx.backups.backup(home / ".zshrc")
    ctx.backups.backup(home / ".zprofile")

    ctx.gateway.write_text(home / ".zshrc", render_zshrc(ctx.settings))
    logger.info("Wrote baseline .zshrc")
