"""
Adapter registry — central dispatch for all adapter operations.

Services never call adapters directly; they hand an Action to the
registry, which checks the adapter is available, validates, executes
and times it.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters."""

    def __init__(self) -> None:
        self._adapters: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def execute_action(
        self,
        action: Action,
        working_dir: Path | str = ".",
        log_file: Path | str | None = None,
    ) -> Receipt:
        """Execute an action through the adapter it names.

        Resolves the adapter, validates, executes and stamps the
        duration. Returns a Receipt and never raises.
        """
        start_time = time.monotonic()

        context = ExecutionContext(
            action=action,
            working_dir=str(working_dir),
            log_file=str(log_file) if log_file is not None else None,
            params=action.params,
        )

        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            if not adapter.is_available():
                logger.debug("Adapter %s is not available", action.adapter)
                return Receipt.failure(
                    adapter=action.adapter,
                    action_id=action.id,
                    error=f"Adapter '{action.adapter}' is not available",
                    metadata={"unavailable": True},
                )
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

        logger.debug("Dispatching %s:%s", action.adapter, action.id)
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt


def default_registry(qtile_socket: Path | None = None) -> AdapterRegistry:
    """Registry wired with the real adapters."""
    from update_qtile.adapters.qtile.ipc import QtileIpcAdapter
    from update_qtile.adapters.shell.command import ShellCommandAdapter
    from update_qtile.adapters.shell.filesystem import FilesystemAdapter
    from update_qtile.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry()
    registry.register(ShellCommandAdapter())
    registry.register(FilesystemAdapter())
    registry.register(GitAdapter())
    registry.register(QtileIpcAdapter(socket_path=qtile_socket))
    return registry
