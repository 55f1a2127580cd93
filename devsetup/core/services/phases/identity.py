"""
git_and_ssh — Git identity, Git defaults and an ED25519 SSH key.

Name, email and token come from the prompter. The token is only ever
held in memory and sent in a request header; it is never logged.
"""

from __future__ import annotations

import logging
import re
import socket
from datetime import datetime
from typing import Callable

from devsetup.core.errors import PhaseError
from devsetup.core.models.phase import PhaseContext
from devsetup.core.models.settings import GITHUB_KEYS_URL

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[a-zA-Z0-9 .'-]{1,100}$")
EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
TOKEN_RE = re.compile(r"^[A-Za-z0-9_]{20,100}$")

MAX_ATTEMPTS = 5

SSH_CONFIG_BLOCK = """
# macOS keychain integration
Host *
  AddKeysToAgent yes
  UseKeychain yes
  IdentityFile ~/.ssh/{key_name}
"""


def _prompt_valid(
    ctx: PhaseContext,
    message: str,
    valid: Callable[[str], bool],
    hint: str,
) -> str:
    for _ in range(MAX_ATTEMPTS):
        value = ctx.prompter.ask(message).strip()
        if value and valid(value):
            return value
        logger.warning(hint)
    raise PhaseError(f"No valid answer after {MAX_ATTEMPTS} attempts: {message}")


def _git_global(ctx: PhaseContext, key: str) -> str:
    receipt = ctx.gateway.query(["git", "config", "--global", key])
    return receipt.output.strip() if receipt.ok else ""


def configure_git(ctx: PhaseContext) -> str:
    """Set user name/email and defaults. Returns the email in effect."""
    gw = ctx.gateway

    name = _git_global(ctx, "user.name")
    if name:
        logger.info("Git user name already configured: %s", name)
    else:
        name = _prompt_valid(
            ctx,
            "Please enter your full name for Git commits",
            lambda v: bool(NAME_RE.match(v)),
            "Invalid name. Use letters, numbers, spaces, dots, apostrophes and hyphens (max 100 characters).",
        )
        gw.run(["git", "config", "--global", "user.name", name])
        logger.info("Git user name set to %s", name)

    email = _git_global(ctx, "user.email")
    if email:
        logger.info("Git email already configured: %s", email)
    else:
        email = _prompt_valid(
            ctx,
            "Please enter your email address for Git commits",
            lambda v: bool(EMAIL_RE.match(v)),
            "Invalid email format. Please try again.",
        )
        gw.run(["git", "config", "--global", "user.email", email])
        logger.info("Git email set to %s", email)

    gw.run(["git", "config", "--global", "init.defaultBranch", ctx.settings.git_default_branch])
    gw.run(["git", "config", "--global", "pull.rebase", "false"])
    return email


def _configure_keychain(ctx: PhaseContext) -> None:
    config = ctx.paths.ssh_config
    if config.is_file() and "UseKeychain yes" in config.read_text(encoding="utf-8", errors="replace"):
        return
    ctx.backups.backup(config)
    ctx.gateway.append_text(config, SSH_CONFIG_BLOCK.format(key_name=ctx.paths.ssh_key.name))
    ctx.gateway.chmod(config, 0o600)


def ensure_ssh_key(ctx: PhaseContext, email: str) -> bool:
    """Generate the key pair if missing. Returns True when a key was created."""
    gw = ctx.gateway
    key = ctx.paths.ssh_key

    if key.is_file():
        logger.info("SSH key already exists at %s", key)
        if ctx.paths.ssh_public_key.is_file():
            logger.info("Your existing SSH public key: %s", ctx.paths.ssh_public_key.read_text().strip())
        return False

    logger.info("Generating new ED25519 SSH key...")
    gw.make_dirs(ctx.paths.ssh_dir, mode=0o700)
    gw.run(["ssh-keygen", "-t", "ed25519", "-C", email, "-f", str(key), "-N", ""])
    _configure_keychain(ctx)
    receipt = gw.run(["ssh-add", "--apple-use-keychain", str(key)], check=False)
    if receipt.failed:
        logger.warning("Could not add %s to the SSH agent: %s", key, receipt.error)

    logger.info("SSH key created successfully.")
    if ctx.paths.ssh_public_key.is_file():
        logger.info("Your new public key (add this to GitHub/GitLab): %s",
                    ctx.paths.ssh_public_key.read_text().strip())
    return True


def upload_key_to_github(ctx: PhaseContext) -> bool:
    """Register the public key with GitHub. Failure is not fatal."""
    token = ""
    for _ in range(MAX_ATTEMPTS):
        token = ctx.prompter.ask(
            "Enter your GitHub personal access token (scope write:public_key)",
            hide_input=True,
            default="",
        ).strip()
        if not token:
            logger.info("No token entered. Skipping upload.")
            return False
        if TOKEN_RE.match(token):
            break
        logger.warning(
            "Invalid token format. Tokens should be 20-100 characters of letters, numbers or underscores."
        )
    else:
        logger.warning("No valid token entered. Skipping upload.")
        return False

    suggested = f"{socket.gethostname()}-{datetime.now():%Y}"
    title = ctx.prompter.ask("Enter a descriptive name for this SSH key", default=suggested).strip()
    pub = ctx.paths.ssh_public_key
    key_text = pub.read_text(encoding="utf-8").strip() if pub.is_file() else ""

    logger.info("Uploading SSH key to GitHub...")
    receipt = ctx.gateway.http_post_json(
        GITHUB_KEYS_URL,
        {"title": title or suggested, "key": key_text},
        headers={"Authorization": f"token {token}"},
    )
    del token

    if receipt.ok and (receipt.simulated or receipt.return_code == 201):
        logger.info("SSH key successfully uploaded to GitHub!")
        return True
    code = receipt.return_code if receipt.return_code is not None else "n/a"
    logger.warning("Failed to upload SSH key to GitHub (HTTP %s). Please add it manually.", code)
    return False


def configure_identity(ctx: PhaseContext) -> None:
    email = configure_git(ctx)
    if ensure_ssh_key(ctx, email):
        if ctx.prompter.confirm("Upload this key to GitHub automatically?", default=False):
            upload_key_to_github(ctx)
