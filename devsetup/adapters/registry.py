"""
Adapter registry — central dispatch for every external effect.

The gateway never talks to adapters directly, always through the
registry. Preview mode is not the registry's concern: the gateway
short-circuits before anything is dispatched.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from devsetup.adapters.base import Adapter, ExecutionContext
from devsetup.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry and dispatcher for adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._adapters.keys())

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter."""
        status = {}
        for name, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception:
                available = False
            status[name] = {
                "name": name,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status

    def execute_action(self, action: Action) -> Receipt:
        """Execute an action through the adapter it names.

        Resolves the adapter, validates, executes, and stamps the
        duration. Never raises.
        """
        start_time = time.monotonic()
        context = ExecutionContext(action=action, params=action.params)

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
            if not is_valid:
                return Receipt.failure(
                    adapter=action.adapter,
                    action_id=action.id,
                    error=f"Validation failed: {error_msg}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            # Adapters should never raise
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt


def default_registry() -> AdapterRegistry:
    """A registry holding every production adapter."""
    from devsetup.adapters.installers.dmg import DiskImageAdapter
    from devsetup.adapters.installers.http import HttpAdapter
    from devsetup.adapters.shell.command import ShellCommandAdapter
    from devsetup.adapters.shell.filesystem import FilesystemAdapter

    registry = AdapterRegistry()
    shell = ShellCommandAdapter()
    registry.register(shell)
    registry.register(FilesystemAdapter())
    registry.register(DiskImageAdapter(shell))
    registry.register(HttpAdapter())
    return registry
