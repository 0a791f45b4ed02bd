"""
Git adapter — fetch the AUR recipe repository.

Uses the git CLI — never a library binding.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.core.models.action import Receipt

logger = logging.getLogger(__name__)


class GitAdapter(Adapter):
    """Git operations.

    Action params:
        operation (str): One of 'clone', 'head'.
        url (str): Remote URL (for 'clone').
        destination (str): Clone target directory (for 'clone').
        timeout (int | None): Timeout in seconds (default: none).
    """

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        valid_ops = {"clone", "head"}
        if operation not in valid_ops:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(valid_ops))}"

        if operation == "clone":
            for key in ("url", "destination"):
                if not context.action.params.get(key):
                    return False, f"Missing required param: '{key}' for clone operation"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        try:
            if operation == "clone":
                return self._clone(context)
            return self._head(context)
        except (OSError, RuntimeError, subprocess.TimeoutExpired) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=str(e),
                metadata={"operation": operation},
            )

    def _clone(self, ctx: ExecutionContext) -> Receipt:
        url = ctx.action.params["url"]
        destination = ctx.action.params["destination"]
        timeout = ctx.action.params.get("timeout")
        start = time.monotonic()
        self._git(["clone", url, destination], cwd=None, timeout=timeout)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Cloned {url} into {destination}",
            duration_ms=int((time.monotonic() - start) * 1000),
            metadata={"url": url, "destination": destination},
        )

    def _head(self, ctx: ExecutionContext) -> Receipt:
        sha = self._git(["rev-parse", "HEAD"], ctx.working_dir).strip()
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=sha,
            metadata={"head": sha},
        )

    def _git(self, args: list[str], cwd: str | None, timeout: int | None = 30) -> str:
        """Run a git command and return stdout."""
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        if result.returncode != 0:
            raise RuntimeError(result.stderr.strip() or f"git {args[0]} failed")
        return result.stdout
