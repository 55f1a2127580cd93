"""
Shell command adapter — run a process from an argv list.

No shell is ever involved: ``shell=False`` always, so arguments that
came from user input cannot be re-interpreted. Scripts that genuinely
need a shell are passed as ``["/bin/bash", "-c", SCRIPT, "_", arg...]``
with the variable parts as positional arguments.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from devsetup.adapters.base import Adapter, ExecutionContext
from devsetup.core.models.action import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(Adapter):
    """Execute a command and capture its output.

    Action params:
        argv (list[str]): The command and its arguments.
        timeout (int | None): Timeout in seconds (default: 300).
        env (dict): Variables merged over the current environment.
        cwd (str): Working directory.
        interactive (bool): Inherit the terminal instead of capturing
            output (installers that prompt for a password).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        argv = context.param("argv")
        if not argv or not isinstance(argv, list):
            return False, "Missing required param: 'argv'"

        cwd = context.param("cwd")
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        argv = [str(a) for a in context.param("argv")]
        timeout = context.param("timeout", 300)
        cwd = context.param("cwd")
        interactive = bool(context.param("interactive", False))

        env = None
        overrides = context.param("env")
        if overrides:
            env = {**os.environ, **{k: str(v) for k, v in overrides.items()}}

        logger.debug("Running %s (cwd=%s)", argv, cwd)
        start = time.monotonic()

        try:
            if interactive:
                result = subprocess.run(argv, cwd=cwd, env=env, timeout=timeout)
                stdout, stderr = "", ""
            else:
                result = subprocess.run(
                    argv,
                    cwd=cwd,
                    env=env,
                    capture_output=True,
                    text=True,
                    timeout=timeout,
                )
                stdout = (result.stdout or "").strip()
                stderr = (result.stderr or "").strip()
        except subprocess.TimeoutExpired:
            return self._fail(
                context,
                f"Command timed out after {timeout}s",
                metadata={"argv": argv, "timeout": timeout},
            )
        except FileNotFoundError:
            return self._fail(
                context,
                f"Command not found: {argv[0]}",
                return_code=127,
                metadata={"argv": argv},
            )
        except Exception as e:
            return self._fail(
                context,
                f"Command execution error: {e}",
                metadata={"argv": argv},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                return_code=0,
                duration_ms=elapsed_ms,
                metadata={"argv": argv, "stderr": stderr},
            )
        return self._fail(
            context,
            stderr or f"Command exited with code {result.returncode}",
            output=stdout,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
            metadata={"argv": argv},
        )
