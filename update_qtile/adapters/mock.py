"""
Mock adapter — stands in for makepkg, pacman, git or the qtile socket.

Every action succeeds unless a receipt was scripted for its ID.
"""

from __future__ import annotations

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.core.models.action import Receipt


class MockAdapter(Adapter):
    def __init__(self, adapter_name: str = "mock", available: bool = True):
        self._name = adapter_name
        self._available = available
        self._scripted: dict[str, Receipt] = {}
        self.call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_count(self) -> int:
        return len(self.call_log)

    @property
    def called_ids(self) -> list[str]:
        """Action IDs in dispatch order."""
        return [ctx.action.id for ctx in self.call_log]

    def is_available(self) -> bool:
        return self._available

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._scripted[action_id] = receipt

    def set_failure(self, action_id: str, error: str = "mock failure", **kwargs) -> None:
        """Script a failed receipt; ``kwargs`` go to ``Receipt.failure``."""
        self._scripted[action_id] = Receipt.failure(
            adapter=self._name, action_id=action_id, error=error, **kwargs
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self.call_log.append(context)
        scripted = self._scripted.get(context.action.id)
        if scripted is not None:
            return scripted
        return Receipt.success(adapter=self._name, action_id=context.action.id)
