"""
Shell command adapter — run makepkg, pacman and sudo.

Commands run with stderr merged into stdout. When the context names a
log file the combined stream is appended to it, otherwise it is
captured into the receipt. ``auto_confirm`` pipes ``yes`` into the
command's stdin so interactive prompts from makepkg/pacman are
answered automatically.
"""

from __future__ import annotations

import contextlib
import logging
import shutil
import subprocess
import time
from pathlib import Path

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.core.models.action import Receipt

logger = logging.getLogger(__name__)


def _reap(proc: subprocess.Popen) -> None:
    proc.kill()
    proc.wait()


class ShellCommandAdapter(Adapter):
    """Execute external commands.

    Action params:
        command (list[str] | str): argv list, or a string for the shell.
        shell (bool): Run through the shell (default: True for strings).
        auto_confirm (bool): Pipe ``yes`` into stdin (default: False).
        timeout (int | None): Seconds before giving up (default: none).
        cwd (str): Override working directory (default: context.working_dir).
    """

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.action.params.get("command")
        if not command:
            return False, "Missing required param: 'command'"

        cwd = context.action.params.get("cwd", context.working_dir)
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        if context.action.params.get("auto_confirm") and shutil.which("yes") is None:
            return False, "auto_confirm requested but 'yes' is not installed"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        command = params["command"]
        use_shell = params.get("shell", isinstance(command, str))
        auto_confirm = params.get("auto_confirm", False)
        timeout = params.get("timeout")
        cwd = params.get("cwd", context.working_dir)

        logger.debug("Executing: %s (cwd=%s, log=%s)", command, cwd, context.log_file)
        start = time.monotonic()

        try:
            with contextlib.ExitStack() as stack:
                if context.log_file:
                    sink = stack.enter_context(
                        open(context.log_file, "a", encoding="utf-8")
                    )
                else:
                    sink = subprocess.PIPE

                yes = None
                if auto_confirm:
                    yes = subprocess.Popen(
                        ["yes"], stdout=subprocess.PIPE, stderr=subprocess.DEVNULL
                    )
                    stack.callback(_reap, yes)

                proc = subprocess.Popen(
                    command,
                    shell=use_shell,
                    cwd=cwd,
                    stdin=yes.stdout if yes else None,
                    stdout=sink,
                    stderr=subprocess.STDOUT,
                    text=True,
                )
                if yes:
                    # the child holds its own copy; SIGPIPE reaches yes once it exits
                    yes.stdout.close()

                try:
                    stdout, _ = proc.communicate(timeout=timeout)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.communicate()
                    return Receipt.failure(
                        adapter=self.name,
                        action_id=context.action.id,
                        error=f"Command timed out after {timeout}s",
                        metadata={"command": command, "timeout": timeout},
                    )

        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": command},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (stdout or "").strip()
        metadata = {"command": command, "log_file": context.log_file}

        if proc.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                return_code=0,
                duration_ms=elapsed_ms,
                metadata=metadata,
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=f"Command exited with code {proc.returncode}",
            output=output,
            return_code=proc.returncode,
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
