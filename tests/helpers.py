"""Helpers shared by the test modules (not fixtures)."""

from pathlib import Path

from devsetup.adapters.mock import MockAdapter
from devsetup.adapters.registry import AdapterRegistry
from devsetup.core.engine.gateway import ExecutionGateway
from devsetup.core.models.action import Action, Receipt
from devsetup.core.models.phase import PhaseContext
from devsetup.core.models.settings import Settings
from devsetup.core.persistence.backup_store import BackupStore
from devsetup.core.prompts import ScriptedPrompter


def make_context(
    registry: AdapterRegistry,
    settings: Settings,
    home: Path,
    *,
    dry_run: bool = False,
    prompter: ScriptedPrompter | None = None,
) -> PhaseContext:
    paths = settings.resolve(home)
    return PhaseContext(
        gateway=ExecutionGateway(registry, dry_run=dry_run),
        backups=BackupStore(paths.backup_root, home, dry_run=dry_run),
        settings=settings,
        paths=paths,
        prompter=prompter or ScriptedPrompter(),
    )


def shell_commands(mock: MockAdapter) -> list[list[str]]:
    """Every argv the mock shell received, in order."""
    return [ctx.action.params["argv"] for ctx in mock.call_log]


def tree(root: Path) -> dict[str, bytes | str]:
    """Snapshot of a directory: relative path -> content or link target."""
    result: dict[str, bytes | str] = {}
    for path in sorted(root.rglob("*")):
        rel = str(path.relative_to(root))
        if path.is_symlink():
            result[rel] = f"-> {path.readlink()}"
        elif path.is_file():
            result[rel] = path.read_bytes()
        else:
            result[rel] = "<dir>"
    return result


def respond(mock: MockAdapter, argv: list[str], output: str = "", *, fail: bool = False) -> None:
    """Script the mock shell's answer to one command."""
    action_id = Action.command(argv).id
    if fail:
        mock.set_failure(action_id)
    else:
        mock.set_response(
            action_id,
            Receipt.success(adapter="shell", action_id=action_id, output=output, return_code=0),
        )
