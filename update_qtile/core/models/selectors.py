"""
Selector model — which upstream qtile to build.

A ``SelectorSet`` holds the raw user choices: one origin (a GitHub fork
or a local checkout) and at most one ref qualifier (commit, branch or
tag). It is frozen once built.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator


class SelectorSet(BaseModel):
    """Origin and ref selectors for the source to build."""

    model_config = ConfigDict(frozen=True)

    fork: str | None = None
    path: str | None = None
    commit: str | None = None
    branch: str | None = None
    tag: str | None = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> SelectorSet:
        if self.fork and self.path:
            raise ValueError("'fork' and 'path' are mutually exclusive")
        refs = [name for name in ("commit", "branch", "tag") if getattr(self, name)]
        if len(refs) > 1:
            raise ValueError(
                f"only one of commit/branch/tag may be set, got: {', '.join(refs)}"
            )
        return self
