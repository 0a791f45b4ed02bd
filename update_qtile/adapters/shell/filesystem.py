"""
Filesystem adapter — removal and globbing.

Removal picks the call by file type: directories are removed
recursively, files and symlinks are unlinked, absent paths are
reported as skipped. A permission failure is flagged in the receipt
metadata so callers can offer a privileged retry.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.core.models.action import Receipt

logger = logging.getLogger(__name__)


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'remove', 'glob'.
        path (str): Target path (relative to working_dir or absolute).
        pattern (str): Glob pattern for 'glob', relative to working_dir
            unless absolute.
    """

    VALID_OPS = {"remove", "glob"}

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self.VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(self.VALID_OPS))}"

        if operation == "glob":
            if not context.action.params.get("pattern"):
                return False, "Missing required param: 'pattern' for glob operation"
        elif not context.action.params.get("path"):
            return False, "Missing required param: 'path'"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.action.params["operation"]
        try:
            if operation == "glob":
                return self._glob(context)

            target = Path(context.action.params["path"])
            if not target.is_absolute():
                target = Path(context.working_dir) / target

            return self._remove(context, target)
        except PermissionError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Permission denied: {e}",
                metadata={"operation": operation, "permission_denied": True},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
                metadata={"operation": operation},
            )

    def _remove(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if target.is_symlink():
            target.unlink()
            kind = "symlink"
        elif target.is_dir():
            shutil.rmtree(target)
            kind = "directory"
        elif target.is_file():
            target.unlink()
            kind = "file"
        else:
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"Not present: {target}",
                metadata={"path": str(target)},
            )

        logger.debug("Removed %s %s", kind, target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Removed {kind}: {target}",
            metadata={"path": str(target), "kind": kind},
        )

    def _glob(self, ctx: ExecutionContext) -> Receipt:
        pattern = ctx.action.params["pattern"]
        root, relative = Path(ctx.working_dir), pattern
        if Path(pattern).is_absolute():
            root = Path(Path(pattern).anchor)
            relative = str(Path(pattern).relative_to(root))
        matches = sorted(str(p) for p in root.glob(relative))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output="\n".join(matches),
            metadata={"pattern": pattern, "matches": matches},
        )
