"""
Error hierarchy for the update pipeline.

Fatal errors (cache, fetch, recipe file, restart) are raised and end
the run with a non-zero exit. Build and install failures are recorded
in the orchestration report instead, so they also subclass
``PhaseError`` to carry the log path for post-mortem inspection.
"""

from __future__ import annotations

from pathlib import Path


class UpdateError(Exception):
    """Base class for every error the pipeline reports to the user."""


class CacheError(UpdateError):
    """The cached AUR checkout could not be removed."""


class FetchError(UpdateError):
    """The AUR recipe repository could not be cloned."""


class RecipeError(UpdateError):
    """Base for PKGBUILD read/write problems."""


class RecipeReadError(RecipeError):
    """PKGBUILD is missing, unreadable, or not UTF-8."""


class RecipeWriteError(RecipeError):
    """The patched PKGBUILD could not be written back."""


class PhaseError(UpdateError):
    """A build/install phase failed."""

    def __init__(self, message: str, log_path: Path | None = None):
        super().__init__(message)
        self.log_path = log_path


class BuildFailure(PhaseError):
    """makepkg exited non-zero."""


class InstallFailure(PhaseError):
    """Stale artifact removal or ``pacman -U`` failed."""


class RestartFailure(PhaseError):
    """qtile did not acknowledge the restart request."""
