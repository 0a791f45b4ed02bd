"""
Settings model — every knob the pipeline reads.

Defaults reproduce the stock setup: the AUR checkout lives where yay
keeps it (``<cache>/yay/qtile-git``), the recipe comes from the
``qtile-git`` AUR repo and the upstream is ``github.com/qtile/qtile``.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


def default_cache_root() -> Path:
    """``$XDG_CACHE_HOME`` or ``~/.cache``."""
    return Path(os.environ.get("XDG_CACHE_HOME") or "~/.cache").expanduser()


def default_stale_artifacts() -> list[str]:
    """Files a non-pacman qtile install leaves behind.

    Entries may be glob patterns, expanded when the sweep runs.
    """
    return [
        "/usr/bin/qtile",
        "/usr/lib/python3.*/site-packages/libqtile",
        "/usr/share/doc/qtile-git",
        "/usr/share/licenses/qtile-git/LICENSE",
        "/usr/share/wayland-sessions/qtile-wayland.desktop",
        "/usr/share/xsessions/qtile.desktop",
    ]


class Settings(BaseModel):
    """Effective configuration for one update run."""

    cache_root: Path = Field(default_factory=default_cache_root)
    cache_namespace: str = "yay"
    package_name: str = "qtile-git"

    project_name: str = "qtile"
    upstream_owner: str = "qtile"
    git_host: str = "github.com"
    aur_url: str = "https://aur.archlinux.org/qtile-git"

    recipe_file: str = "PKGBUILD"
    log_file: str = "install.log"
    package_glob: str = "*.pkg.tar.zst"
    makepkg_flags: list[str] = Field(default_factory=lambda: ["-rsc", "--nocheck"])
    stale_artifacts: list[str] = Field(default_factory=default_stale_artifacts)

    qtile_socket: Path | None = None

    @field_validator("cache_root", "qtile_socket", mode="after")
    @classmethod
    def _expand(cls, value: Path | None) -> Path | None:
        return value.expanduser() if value is not None else None

    @property
    def working_dir(self) -> Path:
        """``<cache-root>/<namespace>/<package>``."""
        return self.cache_root / self.cache_namespace / self.package_name

    @property
    def upstream_url(self) -> str:
        return f"https://{self.git_host}/{self.upstream_owner}/{self.project_name}"
