"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from update_qtile.adapters.mock import MockAdapter
from update_qtile.adapters.registry import AdapterRegistry
from update_qtile.adapters.shell.filesystem import FilesystemAdapter
from update_qtile.core.models.settings import Settings
from update_qtile.core.services.confirmation import is_affirmative

AUR_PKGBUILD = textwrap.dedent("""\
    # Maintainer: someone <someone at example dot org>
    pkgname=qtile-git
    pkgver=0.29.0.r10.gabcdef0
    pkgrel=1
    pkgdesc="A full-featured, pure-Python tiling window manager. (git version)"
    arch=('x86_64')
    url="https://qtile.org"
    license=('MIT')
    depends=('python' 'python-cairocffi')
    makedepends=('git' 'python-setuptools-scm')
    provides=('qtile')
    conflicts=('qtile')
    source=('git+https://github.com/qtile/qtile.git')
    md5sums=('SKIP')

    pkgver()
    {
      cd qtile
      git describe --long --tags | sed 's/^v//;s/-/.r/;s/-/./'
    }

    build()
    {
      cd qtile
      python -m build --wheel --no-isolation
    }
""")


class ScriptedConfirmation:
    """Answers confirmations from a fixed script and records the questions."""

    def __init__(self, answers: list[str] | None = None):
        self._answers = list(answers or [])
        self.questions: list[str] = []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        assert self._answers, f"Unexpected confirmation: {question}"
        return is_affirmative(self._answers.pop(0))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temp cache, stale artifacts under tmp_path/usr."""
    usr = tmp_path / "usr"
    return Settings(
        cache_root=tmp_path / "cache",
        stale_artifacts=[
            str(usr / "bin" / "qtile"),
            str(usr / "lib" / "site-packages" / "libqtile"),
            str(usr / "share" / "doc" / "qtile-git"),
        ],
    )


@pytest.fixture
def working_dir(settings: Settings) -> Path:
    settings.working_dir.mkdir(parents=True)
    return settings.working_dir


@pytest.fixture
def shell() -> MockAdapter:
    return MockAdapter(adapter_name="shell")


@pytest.fixture
def git() -> MockAdapter:
    return MockAdapter(adapter_name="git")


@pytest.fixture
def qtile() -> MockAdapter:
    return MockAdapter(adapter_name="qtile")


@pytest.fixture
def registry(shell: MockAdapter, git: MockAdapter, qtile: MockAdapter) -> AdapterRegistry:
    """Real filesystem adapter, mocks for every external tool."""
    registry = AdapterRegistry()
    registry.register(FilesystemAdapter())
    registry.register(shell)
    registry.register(git)
    registry.register(qtile)
    return registry
