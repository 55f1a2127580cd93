"""
Filesystem adapter — file and directory mutations.

Every write the provisioning run makes to the home directory goes
through here so the gateway can log it and preview mode can skip it.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from devsetup.adapters.base import Adapter, ExecutionContext
from devsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)

_VALID_OPS = {"write", "append", "mkdir", "symlink", "remove", "copy", "chmod"}


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of write, append, mkdir, symlink, remove, copy, chmod.
        path (str): Absolute target path.
        content (str): Text for write/append.
        target (str): Link target (symlink) or destination (copy).
        mode (int): Permission bits for write/mkdir/chmod.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.param("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"

        path = context.param("path", "")
        if not path:
            return False, "Missing required param: 'path'"
        if not Path(path).is_absolute():
            return False, f"Path must be absolute: {path}"

        if operation in ("write", "append") and "content" not in context.params:
            return False, f"Missing required param: 'content' for {operation} operation"
        if operation in ("symlink", "copy") and not context.param("target"):
            return False, f"Missing required param: 'target' for {operation} operation"
        if operation == "chmod" and context.param("mode") is None:
            return False, "Missing required param: 'mode' for chmod operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.param("operation")
        target = Path(context.param("path"))

        handler = getattr(self, f"_{operation}")
        try:
            message = handler(context, target)
        except Exception as e:
            return self._fail(
                context,
                f"Filesystem error: {e}",
                metadata={"operation": operation, "path": str(target)},
            )
        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output=message,
            metadata={"operation": operation, "path": str(target)},
        )

    # ── Operations ───────────────────────────────────────────────

    def _write(self, ctx: ExecutionContext, target: Path) -> str:
        content = ctx.param("content")
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.is_symlink():
            # Replace the link, never write through it
            target.unlink()
        target.write_text(content, encoding="utf-8")
        mode = ctx.param("mode")
        if mode is not None:
            os.chmod(target, mode)
        return f"Written {len(content)} bytes to {target}"

    def _append(self, ctx: ExecutionContext, target: Path) -> str:
        content = ctx.param("content")
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as fh:
            fh.write(content)
        return f"Appended {len(content)} bytes to {target}"

    def _mkdir(self, ctx: ExecutionContext, target: Path) -> str:
        target.mkdir(parents=True, exist_ok=True)
        mode = ctx.param("mode")
        if mode is not None:
            os.chmod(target, mode)
        return f"Directory created: {target}"

    def _symlink(self, ctx: ExecutionContext, target: Path) -> str:
        source = Path(ctx.param("target"))
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.is_dir():
            shutil.rmtree(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.symlink_to(source)
        return f"Linked {target} -> {source}"

    def _remove(self, ctx: ExecutionContext, target: Path) -> str:
        if target.is_symlink() or target.is_file():
            target.unlink()
        elif target.is_dir():
            shutil.rmtree(target)
        else:
            return f"Nothing to remove at {target}"
        return f"Removed {target}"

    def _copy(self, ctx: ExecutionContext, target: Path) -> str:
        dest = Path(ctx.param("target"))
        dest.parent.mkdir(parents=True, exist_ok=True)
        # Replace, never write through: a copied symlink cannot land on an existing path
        if dest.is_symlink() or dest.is_file():
            dest.unlink()
        if target.is_dir() and not target.is_symlink():
            shutil.copytree(target, dest, symlinks=True, dirs_exist_ok=True)
        else:
            shutil.copy2(target, dest, follow_symlinks=False)
        return f"Copied {target} to {dest}"

    def _chmod(self, ctx: ExecutionContext, target: Path) -> str:
        mode = ctx.param("mode")
        os.chmod(target, mode)
        return f"Mode of {target} set to {oct(mode)}"
