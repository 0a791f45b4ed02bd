"""
Recipe patcher — point the qtile-git PKGBUILD at another source.

Three edits are made in one forward pass:

- after every ``license=(...)`` line, insert ``groups=('modified')``
  so the installed package is recognisable;
- the line after ``source=(...)`` becomes ``source=('git+<ref>')``;
- after ``cd qtile``, when the line two below is a ``git describe``,
  add the canonical upstream as a remote and fetch its tags so
  ``pkgver()`` can describe commits from forks.

Known fragility: the scan enumerates the original lines but indexes
into the growing buffer, so every earlier insertion shifts where the
later edits land. With the stock PKGBUILD (``license`` above
``source``) the source edit therefore rewrites the original
``source=`` line itself, and the describe check looks at the line
right after ``cd qtile``. Recipes are patched exactly this way; do not
"fix" the offsets without checking against the AUR PKGBUILD.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from pathlib import Path

from update_qtile.core.errors import RecipeReadError, RecipeWriteError
from update_qtile.core.models.settings import Settings

logger = logging.getLogger(__name__)

LICENSE_RE = re.compile(r"license=\(.*\)")
SOURCE_RE = re.compile(r"source=\(.*\)")
CD_RE = re.compile(r"cd qtile")
DESCRIBE_RE = re.compile(r"git describe")

GROUPS_LINE = "groups=('modified')\n"


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` keeping the terminator on each line."""
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def patch_lines(lines: list[str], source: str, upstream_url: str) -> list[str]:
    """Return the patched copy of ``lines``; the input is not modified."""
    patched = list(lines)
    source_line = f"source=('git+{source}')\n"
    remote_line = f"  git remote add upstream {upstream_url}.git\n"
    fetch_line = "  git fetch upstream --tags --force\n"

    for index, line in enumerate(lines):
        if LICENSE_RE.search(line):
            patched.insert(index + 1, GROUPS_LINE)

        if SOURCE_RE.search(line):
            if index + 1 < len(patched):
                patched[index + 1] = source_line
            else:
                patched.append(source_line)

        if (
            CD_RE.search(line)
            and index + 2 < len(patched)
            and DESCRIBE_RE.search(patched[index + 2])
        ):
            patched.insert(index + 2, remote_line)
            patched.insert(index + 3, fetch_line)

    return patched


class RecipePatcher:
    """Read, patch and rewrite the PKGBUILD in a working directory."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def recipe_path(self, working_dir: Path) -> Path:
        return working_dir / self.settings.recipe_file

    def patch(self, working_dir: Path, source: str) -> Path:
        """Patch the recipe in place and return its path.

        Raises:
            RecipeReadError: The recipe is missing, unreadable or not UTF-8.
            RecipeWriteError: The patched recipe could not be written.
        """
        path = self.recipe_path(working_dir)
        logger.info("modifying %s", self.settings.recipe_file)

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise RecipeReadError(f"could not read {path}: {e}") from e

        lines = split_lines(text)
        patched = patch_lines(lines, source, self.settings.upstream_url)
        logger.debug("%s: %d lines -> %d lines", path, len(lines), len(patched))

        self._write(path, "".join(patched))
        return path

    @staticmethod
    def _write(path: Path, content: str) -> None:
        """Write through a sibling temp file so a failed write leaves no partial file."""
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            if path.exists():
                os.chmod(tmp_name, path.stat().st_mode & 0o7777)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise RecipeWriteError(f"could not write to {path.name}\n{e}") from e
