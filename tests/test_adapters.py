"""
Tests for adapter protocol, registry, mock, shell, filesystem, git and qtile adapters.
"""

import json
import shutil
import socket
import threading
from pathlib import Path

import pytest

from update_qtile.adapters.base import ExecutionContext
from update_qtile.adapters.mock import MockAdapter
from update_qtile.adapters.qtile.ipc import QtileIpcAdapter, find_socket
from update_qtile.adapters.registry import AdapterRegistry, default_registry
from update_qtile.adapters.shell.command import ShellCommandAdapter
from update_qtile.adapters.shell.filesystem import FilesystemAdapter
from update_qtile.adapters.vcs.git import GitAdapter
from update_qtile.core.models.action import Action, Receipt


def _ctx(adapter: str, working_dir: Path | str = ".", log_file: Path | None = None, **params) -> ExecutionContext:
    return ExecutionContext(
        action=Action(id="op", adapter=adapter, params=params),
        working_dir=str(working_dir),
        log_file=str(log_file) if log_file else None,
        params=params,
    )


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter(adapter_name="shell")
        receipt = mock.execute(_ctx("shell"))
        assert receipt.ok
        assert mock.call_count == 1

    def test_set_failure_with_metadata(self):
        mock = MockAdapter()
        mock.set_failure("op", error="nope", metadata={"permission_denied": True})
        receipt = mock.execute(_ctx("mock"))
        assert receipt.failed
        assert receipt.metadata["permission_denied"] is True

    def test_called_ids(self):
        mock = MockAdapter()
        for i in range(3):
            mock.execute(ExecutionContext(action=Action(id=f"op-{i}", adapter="mock")))
        assert mock.called_ids == ["op-0", "op-1", "op-2"]


# ── Registry Tests ──────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_dispatches_by_name(self):
        registry = AdapterRegistry()
        shell, git = MockAdapter(adapter_name="shell"), MockAdapter(adapter_name="git")
        registry.register(shell)
        registry.register(git)
        receipt = registry.execute_action(Action(id="x", adapter="git"))
        assert receipt.ok
        assert git.called_ids == ["x"]
        assert shell.call_count == 0

    def test_missing_adapter_fails(self):
        receipt = AdapterRegistry().execute_action(Action(id="x", adapter="nonexistent"))
        assert receipt.failed
        assert "No adapter registered" in receipt.error

    def test_unavailable_adapter_never_executes(self):
        registry = AdapterRegistry()
        down = MockAdapter(adapter_name="qtile", available=False)
        registry.register(down)
        receipt = registry.execute_action(Action(id="restart", adapter="qtile"))
        assert receipt.failed
        assert receipt.metadata["unavailable"] is True
        assert "not available" in receipt.error
        assert down.call_count == 0

    def test_validation_failure(self):
        registry = AdapterRegistry()
        registry.register(ShellCommandAdapter())
        receipt = registry.execute_action(Action(id="x", adapter="shell"))
        assert receipt.failed
        assert "Validation failed" in receipt.error

    def test_passes_working_dir_and_log(self, tmp_path: Path):
        registry = AdapterRegistry()
        mock = MockAdapter(adapter_name="shell")
        registry.register(mock)
        registry.execute_action(
            Action(id="x", adapter="shell"), working_dir=tmp_path, log_file=tmp_path / "a.log"
        )
        assert mock.call_log[0].working_dir == str(tmp_path)
        assert mock.call_log[0].log_file == str(tmp_path / "a.log")

    def test_raising_adapter_is_contained(self):
        class Exploding(MockAdapter):
            def execute(self, context):
                raise RuntimeError("kaboom")

        registry = AdapterRegistry()
        registry.register(Exploding(adapter_name="boom"))
        receipt = registry.execute_action(Action(id="x", adapter="boom"))
        assert receipt.failed
        assert "kaboom" in receipt.error

    def test_default_registry_filesystem(self, tmp_path: Path):
        (tmp_path / "a.pkg.tar.zst").write_text("")
        receipt = default_registry().execute_action(
            Action(id="g", adapter="filesystem", params={"operation": "glob", "pattern": "*.zst"}),
            working_dir=tmp_path,
        )
        assert receipt.metadata["matches"] == [str(tmp_path / "a.pkg.tar.zst")]

    def test_default_registry_missing_qtile_socket(self, tmp_path: Path):
        registry = default_registry(qtile_socket=tmp_path / "qtilesocket.:0")
        receipt = registry.execute_action(
            Action(id="restart", adapter="qtile", params={"command": "restart"})
        )
        assert receipt.failed
        assert receipt.metadata["unavailable"] is True


# ── Shell Adapter Tests ──────────────────────────────────────────────


class TestShellCommandAdapter:
    def test_capture_merges_stderr(self, tmp_path: Path):
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", tmp_path, command="echo out; echo err >&2")
        )
        assert receipt.ok
        assert "out" in receipt.output
        assert "err" in receipt.output

    def test_appends_to_log(self, tmp_path: Path):
        log = tmp_path / "install.log"
        log.write_text("header\n")
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", tmp_path, log_file=log, command="echo out; echo err >&2")
        )
        assert receipt.ok
        assert receipt.output == ""
        text = log.read_text()
        assert text.startswith("header\n")
        assert "out" in text and "err" in text

    def test_auto_confirm_feeds_yes(self, tmp_path: Path):
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", tmp_path, command=["head", "-n", "2"], auto_confirm=True)
        )
        assert receipt.ok
        assert receipt.output == "y\ny"

    def test_nonzero_exit(self, tmp_path: Path):
        receipt = ShellCommandAdapter().execute(_ctx("shell", tmp_path, command="exit 3"))
        assert receipt.failed
        assert receipt.return_code == 3

    def test_missing_binary(self, tmp_path: Path):
        receipt = ShellCommandAdapter().execute(
            _ctx("shell", tmp_path, command=["definitely-not-a-real-binary-xyz"])
        )
        assert receipt.failed
        assert "Command execution error" in receipt.error

    def test_validate_missing_cwd(self, tmp_path: Path):
        valid, msg = ShellCommandAdapter().validate(
            _ctx("shell", tmp_path / "nope", command=["true"])
        )
        assert not valid
        assert "does not exist" in msg


# ── Filesystem Adapter Tests ─────────────────────────────────────────


class TestFilesystemAdapter:
    def test_remove_directory(self, tmp_path: Path):
        target = tmp_path / "libqtile"
        (target / "backend").mkdir(parents=True)
        (target / "backend" / "x.py").write_text("")
        receipt = FilesystemAdapter().execute(_ctx("filesystem", operation="remove", path=str(target)))
        assert receipt.ok
        assert receipt.metadata["kind"] == "directory"
        assert not target.exists()

    def test_remove_file(self, tmp_path: Path):
        target = tmp_path / "qtile"
        target.write_text("")
        receipt = FilesystemAdapter().execute(_ctx("filesystem", operation="remove", path=str(target)))
        assert receipt.metadata["kind"] == "file"
        assert not target.exists()

    def test_remove_symlink_keeps_target(self, tmp_path: Path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real)
        receipt = FilesystemAdapter().execute(_ctx("filesystem", operation="remove", path=str(link)))
        assert receipt.metadata["kind"] == "symlink"
        assert real.exists()
        assert not link.exists()

    def test_remove_absent_is_skipped(self, tmp_path: Path):
        receipt = FilesystemAdapter().execute(
            _ctx("filesystem", operation="remove", path=str(tmp_path / "gone"))
        )
        assert receipt.status == "skipped"

    def test_relative_path(self, tmp_path: Path):
        (tmp_path / "qtile-git-1-1-x86_64.pkg.tar.zst").write_text("")
        receipt = FilesystemAdapter().execute(
            _ctx("filesystem", tmp_path, operation="remove", path="qtile-git-1-1-x86_64.pkg.tar.zst")
        )
        assert receipt.ok
        assert not (tmp_path / "qtile-git-1-1-x86_64.pkg.tar.zst").exists()

    def test_permission_error_flagged(self, tmp_path: Path, monkeypatch):
        target = tmp_path / "locked"
        target.mkdir()

        def deny(path, *args, **kwargs):
            raise PermissionError(13, "Permission denied", str(path))

        monkeypatch.setattr(shutil, "rmtree", deny)
        receipt = FilesystemAdapter().execute(_ctx("filesystem", operation="remove", path=str(target)))
        assert receipt.failed
        assert receipt.metadata["permission_denied"] is True

    def test_glob_sorted(self, tmp_path: Path):
        for name in ("b.pkg.tar.zst", "a.pkg.tar.zst", "install.log"):
            (tmp_path / name).write_text("")
        receipt = FilesystemAdapter().execute(
            _ctx("filesystem", tmp_path, operation="glob", pattern="*.pkg.tar.zst")
        )
        assert receipt.metadata["matches"] == [
            str(tmp_path / "a.pkg.tar.zst"),
            str(tmp_path / "b.pkg.tar.zst"),
        ]

    def test_glob_absolute_pattern(self, tmp_path: Path):
        for version in ("3.12", "3.13"):
            (tmp_path / "usr" / "lib" / f"python{version}" / "site-packages" / "libqtile").mkdir(parents=True)
        (tmp_path / "usr" / "lib" / "python2.7" / "site-packages").mkdir(parents=True)
        pattern = str(tmp_path / "usr" / "lib" / "python3.*" / "site-packages" / "libqtile")
        receipt = FilesystemAdapter().execute(
            _ctx("filesystem", "/nonexistent", operation="glob", pattern=pattern)
        )
        assert receipt.metadata["matches"] == [
            str(tmp_path / "usr" / "lib" / "python3.12" / "site-packages" / "libqtile"),
            str(tmp_path / "usr" / "lib" / "python3.13" / "site-packages" / "libqtile"),
        ]

    @pytest.mark.parametrize(
        "params,fragment",
        [
            ({}, "operation"),
            ({"operation": "write", "path": "x"}, "Unknown operation"),
            ({"operation": "remove"}, "'path'"),
            ({"operation": "glob"}, "'pattern'"),
        ],
    )
    def test_validation(self, params, fragment):
        valid, msg = FilesystemAdapter().validate(_ctx("filesystem", **params))
        assert not valid
        assert fragment in msg


# ── Git Adapter Tests ────────────────────────────────────────────────


class TestGitAdapter:
    def test_validate_clone_needs_url(self):
        valid, msg = GitAdapter().validate(_ctx("git", operation="clone", destination="/tmp/x"))
        assert not valid
        assert "'url'" in msg

    def test_validate_unknown_operation(self):
        valid, _ = GitAdapter().validate(_ctx("git", operation="push"))
        assert not valid

    @pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
    def test_clone_failure_is_receipt(self, tmp_path: Path):
        receipt = GitAdapter().execute(
            _ctx(
                "git",
                operation="clone",
                url=str(tmp_path / "no-such-repo"),
                destination=str(tmp_path / "dest"),
            )
        )
        assert receipt.failed
        assert receipt.error


# ── qtile IPC Adapter Tests ──────────────────────────────────────────


class _FakeQtile:
    """One-shot Unix socket server answering like qtile's IPC."""

    def __init__(self, path: Path, reply: bytes):
        self.path = path
        self.reply = reply
        self.request = None
        self._server = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        self._server.bind(str(path))
        self._server.listen(1)
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        conn, _ = self._server.accept()
        with conn:
            data = b""
            while chunk := conn.recv(4096):
                data += chunk
            self.request = json.loads(data.decode())
            conn.sendall(self.reply)
        self._server.close()

    def join(self):
        self._thread.join(timeout=5)


@pytest.fixture
def short_tmp():
    """Unix socket paths are length-limited; keep them short."""
    import tempfile

    with tempfile.TemporaryDirectory(prefix="uq") as d:
        yield Path(d)


class TestQtileIpcAdapter:
    def test_null_reply(self, short_tmp: Path):
        server = _FakeQtile(short_tmp / "sock", json.dumps([0, None]).encode())
        receipt = QtileIpcAdapter(socket_path=short_tmp / "sock").execute(
            _ctx("qtile", command="restart")
        )
        server.join()
        assert receipt.ok
        assert receipt.metadata["reply"] is None
        assert server.request == [[], "restart", [], {}, False]

    def test_value_reply(self, short_tmp: Path):
        server = _FakeQtile(short_tmp / "sock", json.dumps([0, "busy"]).encode())
        receipt = QtileIpcAdapter(socket_path=short_tmp / "sock").execute(
            _ctx("qtile", command="restart")
        )
        server.join()
        assert receipt.ok
        assert receipt.metadata["reply"] == "busy"

    def test_error_status(self, short_tmp: Path):
        server = _FakeQtile(short_tmp / "sock", json.dumps([1, "No such command"]).encode())
        receipt = QtileIpcAdapter(socket_path=short_tmp / "sock").execute(
            _ctx("qtile", command="restart")
        )
        server.join()
        assert receipt.failed
        assert receipt.metadata["reply"] == "No such command"
        assert not receipt.metadata.get("transport_error")

    def test_no_socket(self, short_tmp: Path):
        adapter = QtileIpcAdapter(socket_path=short_tmp / "missing")
        assert not adapter.is_available()
        receipt = adapter.execute(_ctx("qtile", command="restart"))
        assert receipt.failed
        assert receipt.metadata["transport_error"] is True

    def test_find_socket(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
        monkeypatch.delenv("WAYLAND_DISPLAY", raising=False)
        monkeypatch.setenv("DISPLAY", ":1")
        assert find_socket() == tmp_path / "qtile" / "qtilesocket.:1"

    def test_find_socket_prefers_wayland(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
        monkeypatch.setenv("WAYLAND_DISPLAY", "wayland-1")
        monkeypatch.setenv("DISPLAY", ":1")
        assert find_socket() == tmp_path / "qtile" / "qtilesocket.wayland-1"


def test_receipt_helpers():
    assert Receipt.success(adapter="a", action_id="b").ok
    assert Receipt.failure(adapter="a", action_id="b", error="e").failed
    assert Receipt.skip(adapter="a", action_id="b", reason="r").output == "r"
