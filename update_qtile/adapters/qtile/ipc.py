"""
qtile IPC adapter — send commands to a running qtile.

qtile listens on a Unix socket under its cache directory. A JSON
client writes one request, closes its write side and reads one JSON
reply of the form ``[status, result]``. The request is
``[selectors, name, args, kwargs, lifted]``.

The receipt is ``ok`` when the server answered with a success status;
``metadata["reply"]`` holds the returned value. Socket-level failures
set ``metadata["transport_error"]``.
"""

from __future__ import annotations

import json
import logging
import os
import socket
from pathlib import Path

from update_qtile.adapters.base import Adapter, ExecutionContext
from update_qtile.core.models.action import Receipt

logger = logging.getLogger(__name__)

SOCKBASE = "qtilesocket.%s"

# reply status codes
SUCCESS = 0
ERROR = 1
EXCEPTION = 2


def find_socket(display: str | None = None) -> Path:
    """Locate qtile's socket the way qtile itself names it."""
    cache_home = Path(os.environ.get("XDG_CACHE_HOME") or "~/.cache").expanduser()
    if display is None:
        display = (
            os.environ.get("WAYLAND_DISPLAY")
            or os.environ.get("DISPLAY")
            or ":0"
        )
    return cache_home / "qtile" / (SOCKBASE % display)


class QtileIpcAdapter(Adapter):
    """Call commands on the qtile root object.

    Action params:
        command (str): Command name, e.g. 'restart'.
        selectors (list): Object selectors (default: root).
        args (list): Positional arguments.
        kwargs (dict): Keyword arguments.
    """

    def __init__(self, socket_path: Path | None = None):
        self._socket_path = socket_path

    @property
    def name(self) -> str:
        return "qtile"

    @property
    def socket_path(self) -> Path:
        return self._socket_path or find_socket()

    def is_available(self) -> bool:
        return self.socket_path.exists()

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not context.action.params.get("command"):
            return False, "Missing required param: 'command'"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        request = [
            params.get("selectors", []),
            params["command"],
            params.get("args", []),
            params.get("kwargs", {}),
            False,
        ]
        path = self.socket_path
        logger.debug("Sending %s to %s", request, path)

        try:
            raw = self._send(path, json.dumps(request).encode())
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Could not talk to qtile at {path}: {e}",
                metadata={"transport_error": True, "socket": str(path)},
            )

        try:
            status, result = json.loads(raw.decode())
        except (ValueError, TypeError) as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Malformed reply from qtile: {e}",
                metadata={"transport_error": True, "socket": str(path)},
            )

        if status != SUCCESS:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"qtile returned an error: {result}",
                metadata={"status": status, "reply": result},
            )

        return Receipt.success(
            adapter=self.name,
            action_id=context.action.id,
            output="" if result is None else json.dumps(result),
            metadata={"status": status, "reply": result},
        )

    @staticmethod
    def _send(path: Path, payload: bytes) -> bytes:
        with socket.socket(socket.AF_UNIX, socket.SOCK_STREAM) as sock:
            sock.connect(str(path))
            sock.sendall(payload)
            sock.shutdown(socket.SHUT_WR)
            chunks: list[bytes] = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)
