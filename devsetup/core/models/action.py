"""
Action and Receipt models — the execution contract.

Actions describe an external effect. Receipts describe its outcome.
Phase bodies build Actions, the gateway dispatches them to adapters,
adapters return Receipts. Never exceptions.

Shell actions always carry an argv list. Nothing here ever joins
untrusted input into a shell string.
"""

from __future__ import annotations

import shlex
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Literal, Sequence

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Action(BaseModel):
    """A requested external effect.

    ``description`` is what the audit trail shows. It must never contain
    secrets (tokens travel in ``params`` only).
    """

    id: str                         # unique action identifier
    adapter: str                    # which adapter handles this
    params: dict[str, Any] = Field(default_factory=dict)
    description: str = ""           # human-readable, logged before execution

    @property
    def label(self) -> str:
        return self.description or self.id

    # ── Builders ─────────────────────────────────────────────────

    @classmethod
    def command(
        cls,
        argv: Sequence[str],
        *,
        env: dict[str, str] | None = None,
        cwd: str | Path | None = None,
        timeout: int | None = 300,
        interactive: bool = False,
        description: str = "",
    ) -> Action:
        """A process invocation (no shell)."""
        argv_list = [str(a) for a in argv]
        joined = shlex.join(argv_list)
        params: dict[str, Any] = {
            "argv": argv_list,
            "timeout": timeout,
            "interactive": interactive,
        }
        if env:
            params["env"] = dict(env)
        if cwd is not None:
            params["cwd"] = str(cwd)
        return cls(
            id=f"shell:{joined}",
            adapter="shell",
            params=params,
            description=description or joined,
        )

    @classmethod
    def filesystem(
        cls,
        operation: str,
        path: str | Path,
        **params: Any,
    ) -> Action:
        """A filesystem mutation (write, append, mkdir, symlink, remove, copy)."""
        data: dict[str, Any] = {"operation": operation, "path": str(path)}
        for key, value in params.items():
            data[key] = str(value) if isinstance(value, Path) else value
        target = f" -> {data['target']}" if "target" in data else ""
        return cls(
            id=f"filesystem:{operation}:{path}",
            adapter="filesystem",
            params=data,
            description=f"{operation} {path}{target}",
        )

    @classmethod
    def http(
        cls,
        method: str,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        timeout: int = 15,
    ) -> Action:
        """An HTTP request. Headers are not part of the description."""
        return cls(
            id=f"http:{method.upper()}:{url}",
            adapter="http",
            params={
                "method": method.upper(),
                "url": url,
                "payload": payload,
                "headers": dict(headers or {}),
                "timeout": timeout,
            },
            description=f"{method.upper()} {url}",
        )

    @classmethod
    def install_app(
        cls,
        image: str | Path,
        bundle: str,
        applications_dir: str | Path = "/Applications",
    ) -> Action:
        """Copy an application bundle out of a disk image."""
        return cls(
            id=f"dmg:{bundle}",
            adapter="dmg",
            params={
                "image": str(image),
                "bundle": bundle,
                "applications_dir": str(applications_dir),
            },
            description=f"install {bundle}.app from {image}",
        )


class Receipt(BaseModel):
    """Result of an adapter execution.

    Receipts capture the full outcome of an action. The adapter
    never raises: a failure is recorded here instead.
    """

    adapter: str
    action_id: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None
    return_code: int | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the action succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the action failed."""
        return self.status == "failed"

    @property
    def simulated(self) -> bool:
        """Whether the receipt was produced without performing the effect."""
        return bool(self.metadata.get("simulated"))

    @classmethod
    def success(
        cls,
        adapter: str,
        action_id: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        action_id: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            action_id=action_id,
            status="failed",
            error=error,
            **kwargs,
        )
