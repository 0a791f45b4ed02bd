"""
Adapter base — the protocol between the pipeline and external tools.

makepkg, pacman, git, sudo, the filesystem and the qtile IPC socket are
all reached through adapters. Services build Actions, the registry
dispatches them, adapters return Receipts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from update_qtile.core.models.action import Action, Receipt


class ExecutionContext(BaseModel):
    """Everything an adapter needs to execute an action.

    ``log_file`` is the build log when the action's output should be
    appended to it instead of being captured.
    """

    action: Action
    working_dir: str = "."
    log_file: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'shell', 'git', 'qtile')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this adapter's underlying tool is available."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Validate that the action can be executed.

        Returns:
            (is_valid, error_message). error_message is empty if valid.
        """

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Execute the action and return a receipt. Must never raise."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
